"""
UTC datetime utilities for consistent timezone handling.

All datetime values in the store are timezone-aware UTC.
Use these helpers instead of datetime.now() or datetime.utcnow().
"""

import re
from datetime import UTC, date, datetime
from email.utils import parsedate_to_datetime

# JavaScript Date.prototype.toString(), e.g.
# "Mon Jan 25 2021 12:09:23 GMT+0700 (Indochina Time)"
_JS_DATE_RE = re.compile(
    r"^(?P<body>[A-Za-z]{3} [A-Za-z]{3} \d{1,2} \d{4} \d{2}:\d{2}:\d{2}) "
    r"GMT(?P<offset>[+-]\d{4})(?: \(.*\))?$"
)


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure a datetime is UTC-aware.

    - If None, returns None
    - If naive, assumes UTC and attaches timezone
    - If aware, converts to UTC

    Args:
        dt: A datetime that may be naive or aware

    Returns:
        UTC-aware datetime or None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def from_timestamp_utc(timestamp: float) -> datetime:
    """
    Create a UTC-aware datetime from a Unix timestamp (seconds).

    Args:
        timestamp: Unix timestamp (seconds since epoch)

    Returns:
        UTC-aware datetime
    """
    return datetime.fromtimestamp(timestamp, tz=UTC)


def parse_datetime(value: object) -> datetime:
    """
    Parse a point in time from the representations callers commonly send.

    Accepted: datetime/date instances, Unix timestamps in seconds, ISO 8601
    strings (a trailing "Z" is accepted), RFC 2822 strings and the
    JavaScript Date.toString() form.

    Args:
        value: Raw value to parse.

    Returns:
        UTC-aware datetime

    Raises:
        ValueError: If the value cannot be interpreted as a point in time.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)  # type: ignore[return-value]
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, bool):
        raise ValueError(f"Invalid datetime value: {value!r}")
    if isinstance(value, int | float):
        try:
            return from_timestamp_utc(value)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Invalid timestamp: {value!r}") from e
    if not isinstance(value, str):
        raise ValueError(f"Invalid datetime value: {value!r}")

    text = value.strip()
    if not text:
        raise ValueError("Empty datetime string")

    try:
        return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))  # type: ignore[return-value]
    except ValueError:
        pass

    match = _JS_DATE_RE.match(text)
    if match:
        return ensure_utc(  # type: ignore[return-value]
            datetime.strptime(
                f"{match['body']} {match['offset']}", "%a %b %d %Y %H:%M:%S %z"
            )
        )

    try:
        return ensure_utc(parsedate_to_datetime(text))  # type: ignore[return-value]
    except (TypeError, ValueError, IndexError) as e:
        raise ValueError(f"Invalid datetime string: {value!r}") from e
