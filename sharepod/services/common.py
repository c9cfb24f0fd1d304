"""Small conversions shared by the share services."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime


def parse_record_id(value: str | uuid.UUID) -> uuid.UUID:
    """Record ids arrive as path strings; raises ValueError when malformed."""
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
