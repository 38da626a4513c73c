"""Date parsing utilities."""

from datetime import date, datetime, timedelta, UTC
from dateutil import parser as date_parser


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def parse_date(date_str: str) -> date:
    """Parse a statement date string into a date object.

    Supports the formats banks commonly export:
    - ISO dates: "2024-01-15", "2024-01-15T10:30:00Z"
    - Compact dates: "20240115"
    - Written dates: "January 15, 2024", "15 Jan 2024", "01/15/2024"

    Any time-of-day or timezone component is dropped.

    Args:
        date_str: Date string from an uploaded file

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if date_str is None or not date_str.strip():
        raise ValueError("Empty date string")

    date_str = date_str.strip()

    try:
        return date.fromisoformat(date_str)
    except ValueError:
        pass

    # dateutil happily reads a bare "7" as a day of the current month
    if date_str.isdigit() and len(date_str) != 8:
        raise ValueError(f"Could not parse date '{date_str}'")

    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, OverflowError, TypeError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def window_start(today: date, days: int) -> date:
    """Return the first day of a trailing window of ``days`` days ending today."""
    if days < 0:
        raise ValueError(f"Window length must not be negative: {days}")
    return today - timedelta(days=days)


def format_range_bound(value: date) -> str:
    """Render a date range bound, keeping the time when it has one."""
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    return value.isoformat()
