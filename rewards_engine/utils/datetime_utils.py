"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes coming back from the driver as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def days_between(earlier: datetime, later: datetime) -> int:
    """
    Whole days elapsed between two datetimes (floored, never negative).

    Args:
        earlier: Start of interval
        later: End of interval

    Returns:
        Number of complete days
    """
    delta = ensure_aware(later) - ensure_aware(earlier)
    return max(int(delta.total_seconds() // 86400), 0)


def month_start(value: datetime) -> datetime:
    """First instant of the month containing value (UTC)."""
    value = ensure_aware(value)
    return value.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
