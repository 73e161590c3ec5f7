"""
Date parsing and formatting utilities.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Union


def parse_date(date_str: Optional[str]) -> Optional[date]:
    """
    Parse a date string into a date object.

    Handles various formats:
    - ISO format (YYYY-MM-DD)
    - ISO datetime (YYYY-MM-DDTHH:MM:SS, with or without fractional seconds)
    - Single digit month/day (YYYY-M-D)

    Args:
        date_str: Date string to parse

    Returns:
        Parsed date object or None if invalid
    """
    if not date_str:
        return None

    # Take only date part if it's a datetime string
    if 'T' in date_str:
        date_str = date_str.split('T')[0]

    # Remove timezone if present
    date_str = date_str.split('+')[0].split('Z')[0]

    try:
        return datetime.strptime(date_str, '%Y-%m-%d').date()
    except ValueError:
        pass

    try:
        parts = date_str.split('-')
        if len(parts) == 3:
            return date(int(parts[0]), int(parts[1]), int(parts[2]))
    except (ValueError, IndexError):
        pass

    return None


def format_date(d: Optional[date]) -> Optional[str]:
    """
    Format a date object as ISO string (YYYY-MM-DD).

    Args:
        d: Date object to format

    Returns:
        ISO formatted date string or None
    """
    if not d:
        return None

    return d.strftime('%Y-%m-%d')


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a Graph timestamp such as ``2024-01-15T09:30:00.1234567Z``.

    Graph emits seven fractional digits, which ``fromisoformat`` rejects on
    older interpreters, so the fraction is trimmed to microseconds first.
    """
    if not value:
        return None

    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'

    if '.' in text:
        head, _, rest = text.partition('.')
        digits = ''
        suffix = ''
        for index, char in enumerate(rest):
            if not char.isdigit():
                suffix = rest[index:]
                break
            digits += char
        text = f"{head}.{digits[:6].ljust(6, '0')}{suffix}" if digits else head + suffix

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def graph_due_date(value: Optional[Dict[str, Any]]) -> Optional[date]:
    """Extract the calendar date from a Graph ``dateTimeTimeZone`` object."""
    if not value:
        return None
    return parse_date(value.get('dateTime'))


def to_graph_due(d: Optional[date]) -> Optional[Dict[str, str]]:
    """Build a Graph ``dateTimeTimeZone`` object for a due date (UTC midnight)."""
    if not d:
        return None
    return {
        'dateTime': f"{d.strftime('%Y-%m-%d')}T00:00:00",
        'timeZone': 'UTC',
    }


def today_string(today: Optional[Union[date, datetime]] = None) -> str:
    """Return today's date as YYYY-MM-DD."""
    current = today or date.today()
    if isinstance(current, datetime):
        current = current.date()
    return current.strftime('%Y-%m-%d')
