"""
Date-key normalization.

Maps the different date representations found in usage payloads onto one
canonical ``YYYY-MM-DD`` key in the UTC reference calendar.
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Optional

CANONICAL_FORMAT = "%Y-%m-%d"

_CANONICAL_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_OFFSET_PATTERN = re.compile(r"([+-]\d{2}):?(\d{2})?$")
_FRACTION_PATTERN = re.compile(r"\.(\d+)")

# Longest fraction datetime.fromisoformat reads before 3.11
FRACTION_DIGITS = 6


def canonical_date(value: Any) -> Optional[str]:
    """Canonicalize a date value to ``YYYY-MM-DD``.

    Timezone-aware datetimes are converted to UTC before the calendar day
    is taken; naive datetimes are assumed to already be in UTC. Invalid
    calendar dates are rejected rather than rolled over to a neighbour.

    Args:
        value: A ``date``, ``datetime`` or string representation

    Returns:
        Canonical date key, or None if the value cannot be parsed
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return None

    text = value.strip()
    if _CANONICAL_PATTERN.match(text):
        try:
            datetime.strptime(text, CANONICAL_FORMAT)
        except ValueError:
            return None
        return text

    parsed = parse_timestamp(text)
    if parsed is None:
        return None
    return canonical_date(parsed)


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp.

    Accepts the forms JavaScript and most usage tools emit on every
    supported Python: a "Z" suffix, "+HHMM" or "+HH" offsets and fractions
    of any length (truncated to microseconds).

    Args:
        value: Timestamp text such as ``2024-03-01T23:59:59.5Z``

    Returns:
        Parsed datetime (naive if the text has no offset), or None
    """
    text = value.strip()
    if len(text) > 10 and text[10] in "Tt ":
        time_part = text[11:]
        if time_part.endswith(("Z", "z")):
            time_part = time_part[:-1] + "+00:00"
        time_part = _OFFSET_PATTERN.sub(_format_offset, time_part)
        time_part = _FRACTION_PATTERN.sub(_format_fraction, time_part)
        text = text[:10] + "T" + time_part
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_canonical(key: str) -> date:
    """Parse a canonical date key back into a ``date``."""
    return datetime.strptime(key, CANONICAL_FORMAT).date()


def sunday_weekday(day: date) -> int:
    """Weekday index with Sunday as 0 and Saturday as 6."""
    return (day.weekday() + 1) % 7


def _format_offset(match) -> str:
    return f"{match.group(1)}:{match.group(2) or '00'}"


def _format_fraction(match) -> str:
    digits = match.group(1)[:FRACTION_DIGITS].ljust(FRACTION_DIGITS, "0")
    return f".{digits}"
