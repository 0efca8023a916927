"""Seed the database with demo events and bookings.

Usage:
    # DATABASE_URL (or DB_*) set in the environment or .env
    ticketing-seed

Events are dated in the future relative to now. Every seeded booking goes
through the normal admission path, so the demo data respects capacity.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.config import get_settings
from ticketing.database import create_engine, create_session_factory, create_tables, get_db_context
from ticketing.event_lock import LocalEventLocks
from ticketing.exceptions import CapacityExceededError
from ticketing.models.event import Event
from ticketing.services.booking_transaction import BookingTransactionManager
from ticketing.stores.event_store import EventStore

logger = logging.getLogger(__name__)

DEMO_EVENTS = [
    {
        "name": "Web Development Conference",
        "description": "Talks on current web development trends: JavaScript, React, Node.js and more.",
        "days_ahead": 30,
        "capacity": 100,
    },
    {
        "name": "Docker and Kubernetes Workshop",
        "description": "Hands-on workshop on containers with Docker and orchestration with Kubernetes.",
        "days_ahead": 60,
        "capacity": 50,
    },
    {
        "name": "Innovation Hackathon",
        "description": "A 48-hour hackathon building solutions to real industry problems.",
        "days_ahead": 90,
        "capacity": 200,
    },
    {
        "name": "Artificial Intelligence Meetup",
        "description": "Recent advances in artificial intelligence, machine learning and deep learning.",
        "days_ahead": 45,
        "capacity": 75,
    },
    {
        "name": "PostgreSQL Crash Course",
        "description": "Three days of PostgreSQL, from the basics to advanced tuning.",
        "days_ahead": 70,
        "capacity": 30,
    },
]

DEMO_EMAILS = [
    "ana.garcia@example.com",
    "carlos.lopez@example.com",
    "maria.rodriguez@example.com",
    "juan.martinez@example.com",
    "laura.sanchez@example.com",
]


async def seed_demo_data(session: AsyncSession) -> tuple[int, int]:
    """
    Insert the demo events that do not exist yet and book a few tickets for each.

    Returns:
        Tuple of (events created, bookings created)
    """
    now = datetime.now(timezone.utc)
    events = EventStore(session)
    transactions = BookingTransactionManager(session, LocalEventLocks())

    created_ids: list[uuid.UUID] = []
    for demo in DEMO_EVENTS:
        result = await session.execute(select(Event).where(Event.name == demo["name"]))
        if result.scalar_one_or_none() is not None:
            continue
        event = await events.create(
            name=demo["name"],
            description=demo["description"],
            date=now + timedelta(days=demo["days_ahead"]),
            capacity=demo["capacity"],
        )
        created_ids.append(event.id)
    await session.commit()

    bookings_created = 0
    for index, event_id in enumerate(created_ids):
        for offset, email in enumerate(DEMO_EMAILS):
            num_tickets = (index + offset) % 4 + 1
            try:
                await transactions.try_create_booking(event_id, num_tickets, email)
            except CapacityExceededError:
                break
            bookings_created += 1

    return len(created_ids), bookings_created


async def seed() -> None:
    settings = get_settings()
    engine = create_engine(settings)
    try:
        await create_tables(engine)
        async with get_db_context(create_session_factory(engine)) as session:
            events_created, bookings_created = await seed_demo_data(session)
    finally:
        await engine.dispose()

    logger.info(f"Seed complete: {events_created} events, {bookings_created} bookings")


def run():
    """Console entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(seed())


if __name__ == "__main__":
    run()
