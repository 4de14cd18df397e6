"""Clock helpers for transcript timestamps."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime.

    Used as the default resolver clock; tests pass their own.
    """
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, leave aware ones untouched."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``."""
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(text))
