"""Shared utilities used across the booking engine."""

import re
from datetime import date, datetime, time, timedelta


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("0412 345 678")
        '0412345678'
        >>> normalize_phone("+44 (20) 7946-0958")
        '+442079460958'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` string into a ``datetime.time``."""
    return datetime.strptime(value.strip(), "%H:%M").time()


def time_to_minutes(value: str) -> int:
    """Convert an ``HH:MM`` string to minutes since midnight."""
    parsed = parse_hhmm(value)
    return parsed.hour * 60 + parsed.minute


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight to ``HH:MM``.

    Examples:
        >>> minutes_to_time(545)
        '09:05'
    """
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def at_minutes(day: date, minutes: int) -> datetime:
    """Return the naive datetime ``minutes`` after midnight on ``day``."""
    return datetime.combine(day, time.min) + timedelta(minutes=minutes)


def overlaps(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open interval overlap: touching endpoints do not overlap."""
    return start1 < end2 and end1 > start2


def dates_between(start: date, end: date) -> list[date]:
    """Inclusive list of calendar dates from ``start`` to ``end``."""
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days


def to_naive_local(value: datetime) -> datetime:
    """Drop timezone info, converting aware values to local wall-clock time first.

    The engine works in naive local time; an aware value (for example an
    ISO string ending in ``Z``) is shifted into the local zone.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def dedupe_tags(values: list[str]) -> list[str]:
    """Strip tags and drop blanks and repeats, keeping first-seen order."""
    seen: list[str] = []
    for value in values:
        value = value.strip()
        if value and value not in seen:
            seen.append(value)
    return seen
