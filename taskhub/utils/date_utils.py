"""
Centralized date/time utilities
All date/time operations should use functions from this module
"""

import time
import uuid
from datetime import date, datetime, timezone
from typing import Optional, Union


def get_current_datetime() -> datetime:
    """
    Get current datetime in UTC

    Returns:
        Current timezone-aware datetime
    """
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes, leave aware ones untouched

    Args:
        value: Datetime to normalize

    Returns:
        Timezone-aware datetime
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_datetime(value: Union[str, date, datetime, None]) -> Optional[datetime]:
    """
    Parse date input into an aware datetime

    Accepts datetime objects, date objects (midnight UTC) and ISO strings
    ("2024-12-31", "2024-12-31T10:00:00Z", "2024-12-31T10:00:00+03:00").

    Args:
        value: Value to parse

    Returns:
        Aware datetime or None for empty input

    Raises:
        ValueError: If the value cannot be parsed
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return ensure_aware(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return ensure_aware(datetime.fromisoformat(text))
        except ValueError:
            raise ValueError(f"Invalid due date: {value}")

    raise ValueError(f"Invalid due date: {value}")


def generate_id(prefix: str) -> str:
    """
    Generate entity id in "<prefix>_<millis>_<random>" form

    Args:
        prefix: Entity prefix, e.g. "task"

    Returns:
        New unique id
    """
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
