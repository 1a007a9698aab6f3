"""UTC time helpers."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def unix_seconds(value: datetime) -> int:
    """Return whole Unix seconds for an aware datetime."""
    return int(value.timestamp())
