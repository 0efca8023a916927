"""Mapping of ticketing errors to HTTP responses.

This is the only place that decides how an error kind looks to callers.
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ticketing.exceptions import (
    CapacityExceededError,
    ForeignKeyError,
    LockUnavailableError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from ticketing.schemas.common import AvailabilityResponse, ErrorResponse

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    error: str,
    detail: str | None,
    availability: AvailabilityResponse | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        detail=detail,
        timestamp=datetime.now(timezone.utc),
        availability=availability,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install one handler per error kind."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation Error", str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return error_response(status.HTTP_404_NOT_FOUND, "Not Found", f"{exc.resource} not found")

    @app.exception_handler(CapacityExceededError)
    async def capacity_exceeded_handler(request: Request, exc: CapacityExceededError):
        return error_response(
            status.HTTP_409_CONFLICT,
            "Capacity Exceeded",
            str(exc),
            availability=AvailabilityResponse.model_validate(exc.availability),
        )

    @app.exception_handler(ForeignKeyError)
    async def foreign_key_handler(request: Request, exc: ForeignKeyError):
        return error_response(status.HTTP_400_BAD_REQUEST, "Unknown Event", str(exc))

    @app.exception_handler(LockUnavailableError)
    async def lock_unavailable_handler(request: Request, exc: LockUnavailableError):
        logger.warning(f"Lock unavailable for {request.method} {request.url.path}: {exc}")
        return error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Service Unavailable",
            "Event is busy, please try again",
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", None)
