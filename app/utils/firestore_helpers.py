"""
Firestore query and timestamp helpers shared by the Firestore and mock stores.

NOTE: For firebase_admin SDK, we use positional arguments which still work.
The deprecation warning is just a warning - the functionality is still supported.
"""

from datetime import datetime, timezone
from typing import Optional


def where_filter(query, field_path: str, op_string: str, value):
    """
    Helper function for Firestore queries.

    Usage:
        query = where_filter(collection, "reporter_id", "==", "a@b.com")
        query = where_filter(query, "status", "==", "Pending")
    """
    return query.where(field_path, op_string, value)


def to_datetime(value) -> Optional[datetime]:
    """
    Convert a stored timestamp into a timezone-aware datetime (UTC).

    Accepts datetimes (including Firestore's DatetimeWithNanoseconds),
    ISO-8601 strings as written by the mock database, and objects
    exposing `to_datetime()` / `timestamp()`.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    if hasattr(value, "to_datetime"):
        return to_datetime(value.to_datetime())
    if hasattr(value, "timestamp"):
        return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
    return None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
