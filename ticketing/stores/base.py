"""Shared helpers for the SQLAlchemy-backed stores."""

import functools
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from ticketing.exceptions import StorageError

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def translate_storage_errors(func):
    """Turn unexpected SQLAlchemy failures into an opaque StorageError."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error(f"Storage failure in {func.__qualname__}: {exc}", exc_info=True)
            raise StorageError("Unexpected storage failure") from exc

    return wrapper
