"""Database primitives: declarative base, column types, repository and errors."""

from delivery_service.core.database.base import (
    NAMING_CONVENTION,
    Base,
    TimestampMixin,
    UTCDateTime,
    utcnow,
)
from delivery_service.core.database.exceptions import NotFoundError
from delivery_service.core.database.repository import BaseRepository

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "NotFoundError",
    "TimestampMixin",
    "UTCDateTime",
    "utcnow",
]
