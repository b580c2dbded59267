"""Calendar-day primitives shared by every engine component.

All engine dates are plain ``datetime.date`` values: a calendar day with no
time-of-day, so arithmetic cannot drift across daylight-saving or timezone
boundaries.  Day keys are the ``YYYY-MM-DD`` string form used by the store.

Stored values written by older clients are ISO timestamps pinned to local
noon (``2024-01-01T12:00:00.000Z``); ``parse_day`` accepts both shapes.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

_DAY_KEY_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


class ParseError(ValueError):
    """Raised when a day key or stored date string cannot be parsed.

    Attributes:
        value: The offending input, kept so callers can log what they dropped.
    """

    def __init__(self, value: object, reason: str = "") -> None:
        self.value = value
        message = f"Invalid day value {value!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


def _as_day(value: date | datetime) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    return value


def to_day_key(value: date | datetime) -> str:
    """Format a date (or the calendar day of a datetime) as ``YYYY-MM-DD``."""
    return _as_day(value).isoformat()


def day_key_to_date(key: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` day key.

    Raises:
        ParseError: If the key is not a valid calendar day.
    """
    if not isinstance(key, str):
        raise ParseError(key, "day key must be a string")
    match = _DAY_KEY_RE.match(key.strip())
    if not match:
        raise ParseError(key, "expected YYYY-MM-DD")
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise ParseError(key, str(exc)) from exc


def parse_day(value: str | date | datetime) -> date:
    """Parse a stored date value into a calendar day.

    Accepts ``date``/``datetime`` objects, strict day keys and ISO-8601
    timestamps.  A timestamp contributes only its calendar date as written;
    noon-pinned values therefore land on the intended day for any UTC
    offset within ±11 hours.

    Raises:
        ParseError: If the value is not a recognisable date.
    """
    if isinstance(value, (date, datetime)):
        return _as_day(value)
    if not isinstance(value, str) or not value.strip():
        raise ParseError(value, "empty or non-string date")

    text = value.strip()
    if _DAY_KEY_RE.match(text):
        return day_key_to_date(text)
    try:
        return datetime.fromisoformat(text).date()
    except ValueError as exc:
        raise ParseError(value, "not an ISO-8601 date or timestamp") from exc


def add_days(day: date, days: int) -> date:
    """Return ``day`` shifted by ``days`` (negative moves backwards)."""
    return _as_day(day) + timedelta(days=days)


def days_between(a: date, b: date) -> int:
    """Signed whole days from ``a`` to ``b`` (``b - a``)."""
    return (_as_day(b) - _as_day(a)).days


def in_range(day: date, start: date, end: date) -> bool:
    """True if ``start <= day <= end`` (inclusive on both ends)."""
    return start <= day <= end
