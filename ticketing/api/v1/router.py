"""API v1 main router."""

from datetime import datetime, timezone

from fastapi import APIRouter

from ticketing import __version__
from ticketing.api.v1.bookings import router as bookings_router
from ticketing.api.v1.events import router as events_router
from ticketing.schemas.common import StatusResponse

router = APIRouter(prefix="/v1")

router.include_router(events_router, prefix="/events", tags=["Events"])
router.include_router(bookings_router, prefix="/bookings", tags=["Bookings"])


@router.get("/status", response_model=StatusResponse, tags=["Health"])
async def api_status() -> StatusResponse:
    """API status."""
    return StatusResponse(
        status="online",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
    )
