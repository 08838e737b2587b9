"""
Timezone-aware datetime utilities.
"""

from datetime import datetime, timedelta, timezone

# UTC timezone constant
UTC = timezone.utc


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Replaces datetime.utcnow() which is deprecated in Python 3.12+.

    Returns:
        datetime: Current UTC time with tzinfo set to UTC
    """
    return datetime.now(UTC)


def days_ago_utc(days: int) -> datetime:
    """Get the UTC datetime `days` days before now."""
    return now_utc() - timedelta(days=days)
