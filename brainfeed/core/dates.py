"""Date formatting utilities."""

from datetime import datetime
from typing import Any, Optional


def current_year() -> int:
    """Get the current calendar year."""
    return datetime.now().year


def parse_year(value: Any, default: Optional[int] = None) -> Optional[int]:
    """
    Parse a publication year from an int or a date string.

    Accepts 2021, "2021", "2021-01-01" or "2021-01-01T00:00:00Z".

    Args:
        value: Raw year/date value from a provider
        default: Value returned when parsing fails

    Returns:
        Year as int or default
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str) and len(value) >= 4 and value[:4].isdigit():
        return int(value[:4])
    return default


def time_ago(year: int) -> str:
    """
    Format a publication year relative to now.

    Examples:
        this year -> "This year"
        last year -> "1 year ago"
        3 years   -> "3 years ago"
        older     -> "2012"
    """
    years = current_year() - year
    if years <= 0:
        return "This year"
    if years == 1:
        return "1 year ago"
    if years <= 5:
        return f"{years} years ago"
    return str(year)
