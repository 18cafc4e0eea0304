"""
Time utility functions.
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime.

    All timestamps are stored naive in UTC so that values read back from
    databases without timezone support compare cleanly with fresh ones.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """
    Number of whole days elapsed from earlier to later, never negative.

    Args:
        earlier: Start of the span
        later: End of the span

    Returns:
        Floor of the elapsed days, clamped at 0
    """
    return max(0, (later - earlier).days)
