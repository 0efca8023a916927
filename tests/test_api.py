"""
Test API endpoints.
"""
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import fakeredis
import pytest
from fastapi.testclient import TestClient

from ticketing.event_lock import EventLockManager
from ticketing.exceptions import LockUnavailableError
from ticketing.main import create_app

EVENTS = "/api/v1/events"
BOOKINGS = "/api/v1/bookings"


class BusyEventLocks(EventLockManager):
    """Lock manager whose events are always held by someone else."""

    @asynccontextmanager
    async def hold(self, *event_ids):
        raise LockUnavailableError("busy")
        yield


def book(client: TestClient, event_id: str, num_tickets: int, email: str = "user@example.com"):
    return client.post(
        BOOKINGS,
        json={"event_id": event_id, "user_email": email, "num_tickets": num_tickets},
    )


class TestEventEndpoints:
    """Test event-related API endpoints."""

    def test_create_event(self, client: TestClient, future_date):
        """Test creating an event via API."""
        response = client.post(
            EVENTS,
            json={"name": "API Event", "date": future_date().isoformat(), "capacity": 100},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "API Event"
        assert data["capacity"] == 100
        assert data["description"] is None
        assert uuid.UUID(data["id"])
        assert "created_at" in data and "updated_at" in data

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "No capacity"},
            {"name": "Zero", "capacity": 0},
            {"name": "", "capacity": 10},
            {"name": "x" * 101, "capacity": 10},
        ],
    )
    def test_create_event_validation(self, client: TestClient, future_date, payload):
        """Test event creation with invalid data."""
        response = client.post(EVENTS, json={"date": future_date().isoformat(), **payload})

        assert response.status_code == 422

    def test_create_event_in_the_past(self, client: TestClient):
        """Test that events cannot be created in the past."""
        past = datetime.now(timezone.utc) - timedelta(days=1)
        response = client.post(
            EVENTS,
            json={"name": "Yesterday", "date": past.isoformat(), "capacity": 10},
        )

        assert response.status_code == 422

    def test_list_events_with_filters(self, client: TestClient, create_event, future_date):
        """Test listing events by name and date range."""
        create_event(name="Jazz Night", days=10)
        create_event(name="Rock Night", days=20)
        create_event(name="jazz brunch", days=40)

        response = client.get(EVENTS, params={"name": "JAZZ"})
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert [e["name"] for e in data["items"]] == ["Jazz Night", "jazz brunch"]

        response = client.get(
            EVENTS,
            params={
                "dateFrom": future_date(5).isoformat(),
                "dateTo": future_date(30).isoformat(),
            },
        )
        assert [e["name"] for e in response.json()["items"]] == ["Jazz Night", "Rock Night"]

    def test_get_event(self, client: TestClient, create_event):
        """Test getting one event without its bookings."""
        event = create_event()

        response = client.get(f"{EVENTS}/{event['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == event["id"]
        assert data["bookings"] is None

    def test_get_event_with_bookings(self, client: TestClient, create_event):
        """Test getting an event together with its bookings, newest first."""
        event = create_event()
        first = book(client, event["id"], 1, "first@example.com").json()["booking"]
        second = book(client, event["id"], 2, "second@example.com").json()["booking"]

        response = client.get(f"{EVENTS}/{event['id']}", params={"includeBookings": "true"})

        assert response.status_code == 200
        bookings = response.json()["bookings"]
        assert [b["id"] for b in bookings] == [second["id"], first["id"]]

    def test_get_event_not_found(self, client: TestClient):
        """Test getting a nonexistent event."""
        response = client.get(f"{EVENTS}/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"] == "Not Found"

    def test_get_event_invalid_id(self, client: TestClient):
        """Test that a malformed id is a validation error."""
        assert client.get(f"{EVENTS}/not-a-uuid").status_code == 422

    def test_update_event(self, client: TestClient, create_event):
        """Test a partial event update."""
        event = create_event(capacity=10)

        response = client.put(f"{EVENTS}/{event['id']}", json={"name": "Renamed"})

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Renamed"
        assert data["capacity"] == 10

    def test_update_event_rejects_null_name(self, client: TestClient, create_event):
        """Test that required fields cannot be cleared."""
        event = create_event()

        response = client.put(f"{EVENTS}/{event['id']}", json={"name": None})

        assert response.status_code == 422

    def test_update_capacity_below_booked(self, client: TestClient, create_event):
        """Test lowering capacity below the tickets already booked."""
        event = create_event(capacity=10)
        book(client, event["id"], 6)

        response = client.put(f"{EVENTS}/{event['id']}", json={"capacity": 5})
        assert response.status_code == 409
        assert response.json()["availability"]["booked"] == 6

        response = client.put(f"{EVENTS}/{event['id']}", json={"capacity": 6})
        assert response.status_code == 200
        assert response.json()["capacity"] == 6

    def test_update_event_not_found(self, client: TestClient):
        """Test updating a nonexistent event."""
        response = client.put(f"{EVENTS}/{uuid.uuid4()}", json={"capacity": 5})

        assert response.status_code == 404

    def test_delete_event_removes_bookings(self, client: TestClient, create_event):
        """Test deleting an event together with its bookings."""
        event = create_event()
        booking = book(client, event["id"], 2).json()["booking"]

        response = client.delete(f"{EVENTS}/{event['id']}")
        assert response.status_code == 200
        assert response.json()["success"] is True

        assert client.get(f"{EVENTS}/{event['id']}").status_code == 404
        assert client.get(f"{BOOKINGS}/{booking['id']}").status_code == 404
        assert client.delete(f"{EVENTS}/{event['id']}").status_code == 404

    def test_check_availability(self, client: TestClient, create_event):
        """Test the availability of an event with bookings."""
        event = create_event(capacity=10)
        book(client, event["id"], 8)

        response = client.get(f"{EVENTS}/{event['id']}/availability", params={"tickets": 3})

        assert response.status_code == 200
        assert response.json() == {
            "available": False,
            "capacity": 10,
            "booked": 8,
            "remaining": 2,
            "requested": 3,
        }

        response = client.get(f"{EVENTS}/{event['id']}/availability")
        assert response.json()["available"] is True
        assert response.json()["requested"] == 1

    def test_check_availability_not_found(self, client: TestClient):
        """Test availability of a nonexistent event."""
        assert client.get(f"{EVENTS}/{uuid.uuid4()}/availability").status_code == 404


class TestBookingEndpoints:
    """Test booking-related API endpoints."""

    def test_create_booking(self, client: TestClient, create_event):
        """Test booking tickets via API."""
        event = create_event(capacity=10)

        response = book(client, event["id"], 4)

        assert response.status_code == 201
        data = response.json()
        assert data["booking"]["event_id"] == event["id"]
        assert data["booking"]["num_tickets"] == 4
        assert data["availability"]["remaining"] == 10
        assert data["availability"]["available"] is True

    def test_create_booking_capacity_exceeded(self, client: TestClient, create_event):
        """Test that a booking larger than the remaining tickets is rejected."""
        event = create_event(capacity=10)
        book(client, event["id"], 8)

        response = book(client, event["id"], 3)

        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "Capacity Exceeded"
        assert data["availability"]["remaining"] == 2
        assert data["availability"]["requested"] == 3

    def test_create_booking_unknown_event(self, client: TestClient):
        """Test booking an event that does not exist."""
        response = book(client, str(uuid.uuid4()), 1)

        assert response.status_code == 404

    @pytest.mark.parametrize(
        "email,num_tickets",
        [("not-an-email", 1), ("user@example.com", 0), (f"{'a' * 60}@{'b' * 40}.com", 1)],
    )
    def test_create_booking_validation(self, client: TestClient, create_event, email, num_tickets):
        """Test booking creation with invalid data."""
        event = create_event()

        response = book(client, event["id"], num_tickets, email)

        assert response.status_code == 422

    def test_list_bookings(self, client: TestClient, create_event):
        """Test listing bookings filtered by email and event."""
        event = create_event(name="First")
        other = create_event(name="Second")
        book(client, event["id"], 1, "alice@example.com")
        book(client, other["id"], 1, "alice@example.com")
        book(client, event["id"], 1, "bob@example.com")

        response = client.get(BOOKINGS, params={"user_email": "alice@example.com"})
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert [b["event"]["name"] for b in data["items"]] == ["Second", "First"]

        response = client.get(
            BOOKINGS,
            params={"user_email": "alice@example.com", "event_id": event["id"]},
        )
        assert response.json()["count"] == 1

    def test_list_event_bookings(self, client: TestClient, create_event):
        """Test listing the bookings of one event."""
        event = create_event()
        book(client, event["id"], 1, "alice@example.com")
        book(client, event["id"], 2, "bob@example.com")

        response = client.get(f"{BOOKINGS}/event/{event['id']}")

        assert response.status_code == 200
        assert [b["user_email"] for b in response.json()["items"]] == [
            "bob@example.com",
            "alice@example.com",
        ]

    def test_list_event_bookings_unknown_event(self, client: TestClient):
        """Test that an unknown event simply has no bookings."""
        response = client.get(f"{BOOKINGS}/event/{uuid.uuid4()}")

        assert response.status_code == 200
        assert response.json() == {"items": [], "count": 0}

    def test_get_booking_with_event(self, client: TestClient, create_event):
        """Test getting a booking together with its event."""
        event = create_event(name="Detail Event")
        booking = book(client, event["id"], 3).json()["booking"]

        response = client.get(f"{BOOKINGS}/{booking['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["num_tickets"] == 3
        assert data["event"]["name"] == "Detail Event"

    def test_get_booking_not_found(self, client: TestClient):
        """Test getting a nonexistent booking."""
        response = client.get(f"{BOOKINGS}/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["detail"] == "Booking not found"

    def test_update_booking_ticket_count(self, client: TestClient, create_event):
        """Test raising and lowering a booking's ticket count."""
        event = create_event(capacity=10)
        booking = book(client, event["id"], 4).json()["booking"]
        book(client, event["id"], 4, "other@example.com")

        response = client.put(f"{BOOKINGS}/{booking['id']}", json={"num_tickets": 7})
        assert response.status_code == 409

        response = client.put(f"{BOOKINGS}/{booking['id']}", json={"num_tickets": 6})
        assert response.status_code == 200
        assert response.json()["num_tickets"] == 6

        response = client.put(f"{BOOKINGS}/{booking['id']}", json={"num_tickets": 1})
        assert response.status_code == 200
        assert response.json()["num_tickets"] == 1

    def test_update_booking_email(self, client: TestClient, create_event):
        """Test changing only the email of a booking."""
        event = create_event()
        booking = book(client, event["id"], 1).json()["booking"]

        response = client.put(
            f"{BOOKINGS}/{booking['id']}",
            json={"user_email": "new@example.com", "event_id": event["id"]},
        )

        assert response.status_code == 200
        assert response.json()["user_email"] == "new@example.com"

    def test_move_booking(self, client: TestClient, create_event):
        """Test moving a booking to another event."""
        source = create_event(capacity=10, name="Source")
        target = create_event(capacity=3, name="Target")
        booking = book(client, source["id"], 4).json()["booking"]

        response = client.put(f"{BOOKINGS}/{booking['id']}", json={"event_id": target["id"]})
        assert response.status_code == 409

        response = client.put(
            f"{BOOKINGS}/{booking['id']}",
            json={"event_id": target["id"], "num_tickets": 3},
        )
        assert response.status_code == 200
        assert response.json()["event_id"] == target["id"]

        availability = client.get(f"{EVENTS}/{source['id']}/availability").json()
        assert availability["remaining"] == 10

    def test_move_booking_to_unknown_event(self, client: TestClient, create_event):
        """Test moving a booking to an event that does not exist."""
        event = create_event()
        booking = book(client, event["id"], 1).json()["booking"]

        response = client.put(f"{BOOKINGS}/{booking['id']}", json={"event_id": str(uuid.uuid4())})

        assert response.status_code == 400
        assert response.json()["error"] == "Unknown Event"

    def test_update_booking_not_found(self, client: TestClient):
        """Test updating a nonexistent booking."""
        response = client.put(f"{BOOKINGS}/{uuid.uuid4()}", json={"num_tickets": 2})

        assert response.status_code == 404

    def test_delete_booking_frees_tickets(self, client: TestClient, create_event):
        """Test that deleting a booking makes its tickets available again."""
        event = create_event(capacity=5)
        booking = book(client, event["id"], 5).json()["booking"]
        assert book(client, event["id"], 1).status_code == 409

        response = client.delete(f"{BOOKINGS}/{booking['id']}")
        assert response.status_code == 200

        assert book(client, event["id"], 5).status_code == 201
        assert client.delete(f"{BOOKINGS}/{booking['id']}").status_code == 404


class TestConcurrentBookings:
    """Test that concurrent requests never overbook an event."""

    def test_race_condition(self, client: TestClient, create_event):
        """Test 12 concurrent single ticket requests on a 5 ticket event."""
        event = create_event(capacity=5)

        with ThreadPoolExecutor(max_workers=12) as executor:
            futures = [
                executor.submit(book, client, event["id"], 1, f"user{i}@example.com")
                for i in range(12)
            ]
            statuses = [f.result().status_code for f in futures]

        assert statuses.count(201) == 5
        assert statuses.count(409) == 7

        availability = client.get(f"{EVENTS}/{event['id']}/availability").json()
        assert availability["booked"] == 5
        assert availability["remaining"] == 0


class TestHealthEndpoints:
    """Test health and status endpoints."""

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["lock_backend"] == "local"

    def test_status(self, client: TestClient):
        response = client.get("/api/v1/status")

        assert response.status_code == 200
        assert response.json()["status"] == "online"

    def test_redis_lock_backend(self, settings, monkeypatch):
        """Test the application end to end with Redis-backed locks."""
        monkeypatch.setattr(
            "ticketing.main.create_redis",
            lambda settings: fakeredis.FakeAsyncRedis(decode_responses=True),
        )
        redis_settings = settings.model_copy(update={"LOCK_BACKEND": "redis"})

        with TestClient(create_app(redis_settings)) as client:
            assert client.get("/health").json()["lock_backend"] == "redis"

            event = client.post(
                EVENTS,
                json={
                    "name": "Redis Event",
                    "date": (datetime.now(timezone.utc) + timedelta(days=3)).isoformat(),
                    "capacity": 2,
                },
            ).json()
            assert book(client, event["id"], 2).status_code == 201
            assert book(client, event["id"], 1).status_code == 409

    def test_busy_event_returns_503(self, client: TestClient, create_event):
        """Test that a lock that cannot be acquired maps to Service Unavailable."""
        event = create_event()
        client.app.state.event_locks = BusyEventLocks()

        response = book(client, event["id"], 1)

        assert response.status_code == 503
        assert response.json()["error"] == "Service Unavailable"


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class TestResponseTimestamps:
    """Test that timestamps read back from the database are sent as UTC."""

    def test_event_timestamps_carry_utc_offset(self, client: TestClient, create_event):
        event = create_event()

        data = client.get(f"{EVENTS}/{event['id']}").json()

        for field in ("date", "created_at", "updated_at"):
            assert parse_timestamp(data[field]).utcoffset() == timedelta(0)

    def test_booking_timestamps_carry_utc_offset(self, client: TestClient, create_event):
        event = create_event()
        booking = book(client, event["id"], 1).json()["booking"]

        data = client.get(f"{BOOKINGS}/{booking['id']}").json()

        for value in (data["created_at"], data["updated_at"], data["event"]["date"]):
            assert parse_timestamp(value).utcoffset() == timedelta(0)


class TestLogging:
    """Test logging set up by the application factory."""

    def test_factory_applies_log_level(self, settings):
        package_logger = logging.getLogger("ticketing")
        previous = package_logger.level
        try:
            create_app(settings.model_copy(update={"LOG_LEVEL": "DEBUG"}))
            assert package_logger.level == logging.DEBUG
        finally:
            package_logger.setLevel(previous)

    def test_startup_is_logged(self, settings, caplog):
        with caplog.at_level(logging.INFO):
            with TestClient(create_app(settings)):
                pass

        assert "Starting Event Ticketing API..." in caplog.text
        assert "Using local event locks" in caplog.text
