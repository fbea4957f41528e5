from datetime import datetime, timezone
from typing import Any

from loguru import logger

# A heuristic to determine the unit of a numeric timestamp.
# Values above this are taken as milliseconds (year 2286 in seconds).
MILLISECONDS_THRESHOLD = 10**10
# Values above this are taken as microseconds.
MICROSECONDS_THRESHOLD = 10**13


def get_current_rfc3339_timestamp() -> str:
    """Returns the current time in UTC as an RFC3339 string with milliseconds.

    Example: "2024-04-20T00:09:27.123Z"
    """
    return to_rfc3339(datetime.now(timezone.utc))


def to_rfc3339(dt: datetime) -> str:
    """Formats an aware datetime as a UTC RFC3339 string with milliseconds."""
    return (
        dt.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def now_ms() -> int:
    """Returns the current time as milliseconds since the Unix epoch."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def to_datetime(timestamp: Any) -> datetime:
    """Converts a timestamp from various formats to an aware UTC datetime.

    This function can handle:
    - int, float: Unix timestamps in seconds, milliseconds or microseconds.
      The unit is guessed from the magnitude.
    - str: ISO 8601, with or without a 'Z' suffix.
    - datetime: Naive datetimes are assumed to be UTC.

    Raises:
        ValueError: If the timestamp format is unrecognized or invalid.
    """
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            return timestamp.replace(tzinfo=timezone.utc)
        return timestamp.astimezone(timezone.utc)

    if isinstance(timestamp, bool):
        err_msg = "Boolean is not a timestamp."
        raise ValueError(err_msg)

    if isinstance(timestamp, int | float):
        if timestamp > MICROSECONDS_THRESHOLD:
            ts_seconds = timestamp / 1_000_000
        elif timestamp > MILLISECONDS_THRESHOLD:
            ts_seconds = timestamp / 1_000
        else:
            ts_seconds = timestamp
        try:
            return datetime.fromtimestamp(ts_seconds, tz=timezone.utc)
        except (OSError, OverflowError, ValueError) as e:
            err_msg = f"Numeric timestamp '{timestamp}' is out of range."
            raise ValueError(err_msg) from e

    if isinstance(timestamp, str):
        try:
            if timestamp.endswith("Z"):
                timestamp = timestamp[:-1] + "+00:00"
            dt_obj = datetime.fromisoformat(timestamp)
        except ValueError as e:
            logger.warning(f"Could not parse timestamp string '{timestamp}': {e}")
            err_msg = f"Invalid or unrecognized timestamp string format: {timestamp}"
            raise ValueError(err_msg) from e
        if dt_obj.tzinfo is None:
            return dt_obj.replace(tzinfo=timezone.utc)
        return dt_obj.astimezone(timezone.utc)

    err_msg = f"Unsupported timestamp type: {type(timestamp).__name__}"
    raise ValueError(err_msg)


def from_millis(timestamp_ms: int) -> datetime:
    """Converts exchange epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
