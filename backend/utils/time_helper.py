"""
Timestamp helper for the application.

All persisted timestamps are naive UTC, matching what SQLite stores.
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Current time as a naive UTC datetime.

    Returns:
        datetime: Now, in UTC, without tzinfo
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
