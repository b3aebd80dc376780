"""
Half-open wall-clock intervals on a single civil day.

All arithmetic works on integer minutes since midnight. Strings are only
parsed at the edges (``parse_hhmm``) and rendered for display
(``format_hhmm``); they are never compared directly.
"""

from dataclasses import dataclass
from typing import Iterable, List

MINUTES_PER_DAY = 24 * 60


def parse_hhmm(value: str) -> int:
    """
    Parse an ``HH:MM`` string into minutes since midnight.

    ``24:00`` is accepted so that an interval can run until midnight.

    Raises:
        ValueError: If the string is not a valid wall-clock time
    """
    if not isinstance(value, str):
        raise ValueError(f"Time must be a string in HH:MM format, got {value!r}")

    hours_str, sep, minutes_str = value.strip().partition(":")
    if not sep or not hours_str.isdigit() or not minutes_str.isdigit() or len(minutes_str) != 2:
        raise ValueError(f"Time must be in HH:MM format, got {value!r}")

    hours = int(hours_str)
    minutes = int(minutes_str)
    if minutes > 59 or hours > 24 or (hours == 24 and minutes != 0):
        raise ValueError(f"Time out of range: {value!r}")

    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    """Render minutes since midnight as ``HH:MM``."""
    if not 0 <= minutes <= MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range for a single day: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True, order=True)
class TimeInterval:
    """
    Immutable half-open interval ``[start, end)`` in minutes since midnight.

    Invariant: start must be before end.
    """
    start: int
    end: int

    def __post_init__(self):
        if not 0 <= self.start < self.end <= MINUTES_PER_DAY:
            raise ValueError(
                f"Start time {self.start} must be before end time {self.end} "
                f"within a single day"
            )

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeInterval":
        """Build an interval from two ``HH:MM`` strings."""
        return cls(start=parse_hhmm(start), end=parse_hhmm(end))

    @classmethod
    def starting_at(cls, start: int, duration_minutes: int) -> "TimeInterval":
        """Build the interval ``[start, start + duration)``."""
        return cls(start=start, end=start + duration_minutes)

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return self.end - self.start

    def overlaps(self, other: "TimeInterval") -> bool:
        """Check if this interval overlaps with another."""
        return overlaps(self, other)

    def __str__(self) -> str:
        return f"{format_hhmm(self.start)}-{format_hhmm(self.end)}"


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """
    True iff the two intervals share at least one minute.

    An interval ending exactly when another begins does not overlap it.
    """
    return a.start < b.end and b.start < a.end


def contains(container: TimeInterval, point: int, duration_minutes: int) -> bool:
    """True iff ``[point, point + duration)`` fits entirely inside ``container``."""
    return point >= container.start and point + duration_minutes <= container.end


def overlaps_any(candidate: TimeInterval, intervals: Iterable[TimeInterval]) -> bool:
    """True iff ``candidate`` overlaps at least one of ``intervals``."""
    return any(overlaps(candidate, interval) for interval in intervals)


def subtract(base: TimeInterval, removals: Iterable[TimeInterval]) -> List[TimeInterval]:
    """
    Subtract intervals from a base interval, yielding what remains.

    Example:
    Base: 09:00 - 18:00
    Removals: [12:00-13:00, 15:00-15:30]
    Result: [09:00-12:00, 13:00-15:00, 15:30-18:00]
    """
    remaining: List[TimeInterval] = []
    current_start = base.start

    for removal in sorted(removals):
        if not overlaps(base, removal):
            continue

        clipped_start = max(removal.start, base.start)
        clipped_end = min(removal.end, base.end)

        if current_start < clipped_start:
            remaining.append(TimeInterval(start=current_start, end=clipped_start))

        current_start = max(current_start, clipped_end)

    if current_start < base.end:
        remaining.append(TimeInterval(start=current_start, end=base.end))

    return remaining


def merge(intervals: Iterable[TimeInterval]) -> List[TimeInterval]:
    """
    Merge overlapping or adjacent intervals.

    Example: [09:00-10:00, 10:00-11:00] -> [09:00-11:00]
    """
    sorted_intervals = sorted(intervals)
    if not sorted_intervals:
        return []

    merged: List[TimeInterval] = [sorted_intervals[0]]
    for current in sorted_intervals[1:]:
        last = merged[-1]
        if current.start <= last.end:
            merged[-1] = TimeInterval(start=last.start, end=max(last.end, current.end))
        else:
            merged.append(current)

    return merged
