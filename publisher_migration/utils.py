"""Small helpers shared across the migration toolkit."""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil import parser as date_parser


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a new record ID."""
    return str(uuid.uuid4())


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Coerce a legacy timestamp into an aware UTC datetime.

    Accepts datetimes, ISO-ish strings and Unix timestamps. Naive values
    are assumed to already be in UTC.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        dt = date_parser.parse(str(value))

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_float(value: Any) -> Optional[float]:
    """Convert numeric-ish legacy values (strings, Decimals) to float."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
