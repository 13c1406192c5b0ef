"""
Time Utilities

OKX reports snapshot times as epoch milliseconds encoded in a string
(e.g., "1700000000000"). The helpers here turn those into timezone-aware
UTC datetimes used by the PriceLevel schema.
"""

from datetime import datetime, timedelta, timezone
from typing import Union

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def ms_to_utc_datetime(timestamp_ms: Union[str, int]) -> datetime:
    """
    Convert an epoch-milliseconds timestamp to a UTC datetime.

    Args:
        timestamp_ms: Milliseconds since epoch, as int or numeric string

    Returns:
        datetime: Timezone-aware datetime in UTC, millisecond precision

    Raises:
        ValueError: If the value is not an integer or is out of range

    Examples:
        >>> ms_to_utc_datetime("1700000000000")
        datetime.datetime(2023, 11, 14, 22, 13, 20, tzinfo=datetime.timezone.utc)

        >>> ms_to_utc_datetime(1700000000123).microsecond
        123000

    Notes:
        - Only whole integers are accepted ("1.7e12" or "abc" raise ValueError)
        - Integer arithmetic avoids float rounding on the millisecond part
    """
    if isinstance(timestamp_ms, bool):
        raise ValueError(f"Invalid timestamp: {timestamp_ms!r}")

    try:
        value = int(str(timestamp_ms).strip())
    except (TypeError, ValueError):
        raise ValueError(f"Invalid timestamp: {timestamp_ms!r}")

    if value < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp_ms!r}")

    try:
        return EPOCH + timedelta(milliseconds=value)
    except OverflowError as e:
        raise ValueError(f"Timestamp out of range: {timestamp_ms!r}. Error: {e}")


def current_utc_datetime() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        datetime: Current time as timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)
