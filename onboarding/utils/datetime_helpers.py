"""
Datetime helpers
"""
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form stored in the database"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime for storage

    Aware datetimes are converted to UTC and stripped of tzinfo; naive
    datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)
