"""Time helpers shared by availability and session scheduling.

Wall-clock times are ``"HH:MM"`` strings (24-hour), calendar dates are
``"YYYY-MM-DD"`` strings. Every function here is pure apart from ``utc_now``.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from datetime import date, datetime, time, timezone, tzinfo
from typing import TypeVar

_TIME_RE = re.compile(r"^([01][0-9]|2[0-3]):([0-5][0-9])$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MINUTES_PER_DAY = 24 * 60

# Minute offsets within a day, or aware instants.
Instant = TypeVar("Instant", int, datetime)


class InvalidFormatError(ValueError):
    """Raised when a date or time string is malformed."""


def utc_now() -> datetime:
    """Return aware UTC datetime."""
    return datetime.now(timezone.utc)


def validate_time_format(value: object) -> bool:
    """Return True for a 24-hour ``HH:MM`` string."""
    return isinstance(value, str) and _TIME_RE.match(value) is not None


def validate_date_format(value: object) -> bool:
    """Return True for a ``YYYY-MM-DD`` string naming a real calendar day."""
    if not isinstance(value, str) or _DATE_RE.match(value) is None:
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def time_to_minutes(value: str) -> int:
    """Convert ``HH:MM`` to minutes since midnight."""
    if not validate_time_format(value):
        raise InvalidFormatError(f"Invalid time format: {value!r}")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight to ``HH:MM``."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range: {minutes}")
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def is_end_after_start(start: str, end: str) -> bool:
    """Return True when ``end`` is strictly later in the day than ``start``."""
    return time_to_minutes(end) > time_to_minutes(start)


class SlotRange:
    """Restartable lazy sequence of slot start times.

    Slots start at ``start`` and step by ``interval_minutes``; a slot is kept
    only when its whole interval ends at or before ``end``.
    """

    __slots__ = ("start_minutes", "end_minutes", "interval_minutes")

    def __init__(self, start: str, end: str, interval_minutes: int = 30) -> None:
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        self.start_minutes = time_to_minutes(start)
        self.end_minutes = time_to_minutes(end)
        self.interval_minutes = interval_minutes

    def __iter__(self) -> Iterator[str]:
        current = self.start_minutes
        while current + self.interval_minutes <= self.end_minutes:
            yield minutes_to_time(current)
            current += self.interval_minutes

    def __len__(self) -> int:
        span = self.end_minutes - self.start_minutes
        if span <= 0:
            return 0
        return span // self.interval_minutes

    def __repr__(self) -> str:
        return (
            f"SlotRange({minutes_to_time(self.start_minutes)!r}, "
            f"{minutes_to_time(self.end_minutes)!r}, {self.interval_minutes})"
        )


def generate_slots(start: str, end: str, interval_minutes: int = 30) -> SlotRange:
    """Return slot start times between ``start`` and ``end``."""
    return SlotRange(start, end, interval_minutes)


def parse_date(date_str: str) -> date:
    """Parse ``YYYY-MM-DD`` into a date."""
    if not validate_date_format(date_str):
        raise InvalidFormatError(f"Invalid date format: {date_str!r}")
    return date.fromisoformat(date_str)


def combine_date_and_time(date_str: str, time_str: str, tz: tzinfo = timezone.utc) -> datetime:
    """Build an aware datetime from a calendar date and a wall-clock time."""
    day = parse_date(date_str)
    if not validate_time_format(time_str):
        raise InvalidFormatError(f"Invalid time format: {time_str!r}")
    hours, minutes = (int(part) for part in time_str.split(":"))
    return datetime.combine(day, time(hours, minutes), tzinfo=tz)


def day_of_week(moment: datetime | date) -> int:
    """Return day index with 0 = Sunday and 6 = Saturday."""
    return moment.isoweekday() % 7


def format_date(moment: datetime | date) -> str:
    """Format as ``YYYY-MM-DD``."""
    return moment.strftime("%Y-%m-%d")


def format_time(moment: datetime) -> str:
    """Format wall-clock part as ``HH:MM``."""
    return moment.strftime("%H:%M")


def periods_overlap(start1: Instant, end1: Instant, start2: Instant, end2: Instant) -> bool:
    """Return True when ``[start1, end1)`` and ``[start2, end2)`` intersect.

    Touching endpoints (``end1 == start2``) do not overlap.
    """
    return start1 < end2 and start2 < end1


def time_of_day(moment: datetime, tz: tzinfo | None = None) -> str:
    """Return the ``HH:MM`` wall-clock time of ``moment``, optionally in ``tz``."""
    if tz is not None:
        moment = moment.astimezone(tz)
    return format_time(moment)
