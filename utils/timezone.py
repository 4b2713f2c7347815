"""UTC-everywhere time handling."""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Current time in UTC. Use instead of datetime.now()."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert an aware datetime to UTC.

    Raises:
        ValueError: If dt is naive
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime to UTC. Datetime must be timezone-aware."
        )
    return dt.astimezone(timezone.utc)


def is_in_future(dt: datetime, now: datetime | None = None) -> bool:
    """Whether an aware datetime is strictly after now."""
    return to_utc(dt) > (now or now_utc())
