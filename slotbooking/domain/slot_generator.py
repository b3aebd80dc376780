"""
Core business logic for generating bookable slots for one day.

Pure domain logic: the schedule, the booked intervals and the reference
time are all passed in. Nothing here reads a clock or a store.
"""

from datetime import date as civil_date
from typing import Dict, List, Sequence

from pendulum import DateTime

from .exceptions import InvalidRequest
from .intervals import TimeInterval, overlaps_any
from .models import DailyAvailability, Slot, SlotStatus

DEFAULT_STEP_MINUTES = 15


class SlotGenerator:
    """
    Generates classified slot candidates for a professional's day.

    Algorithm:
    1. Day off -> no slots
    2. Walk each work interval in fixed steps while the service still fits
    3. Classify each candidate: past, then break, then booked, else available
    4. Deduplicate by start time across work intervals (first one wins)
    5. Return in ascending start order

    The step is independent of the service duration so slot start times
    always fall on the same grid (quarter hours by default).
    """

    def __init__(self, step_minutes: int = DEFAULT_STEP_MINUTES):
        if step_minutes <= 0:
            raise ValueError(f"step_minutes must be positive, got {step_minutes}")
        self.step_minutes = step_minutes

    def generate_slots(
        self,
        day: DailyAvailability,
        booked_intervals: Sequence[TimeInterval],
        required_duration: int,
        reference_now: DateTime,
        query_date: civil_date,
    ) -> List[Slot]:
        """
        Generate slots for ``query_date``.

        Args:
            day: The professional's availability for the query date's weekday
            booked_intervals: Intervals of existing non-cancelled appointments
            required_duration: Total duration of the selected services, minutes
            reference_now: Current time in the provider's timezone
            query_date: The civil date being queried

        Returns:
            Slots ordered by start time

        Raises:
            InvalidRequest: If required_duration is not positive
        """
        if required_duration <= 0:
            raise InvalidRequest("Select at least one service with a non-zero duration.")

        if day.is_day_off:
            return []

        past_before_seconds = self._past_cutoff_seconds(reference_now, query_date)

        slots: Dict[int, Slot] = {}
        for work_interval in day.work_intervals:
            cursor = work_interval.start
            while cursor + required_duration <= work_interval.end:
                if cursor not in slots:
                    candidate = TimeInterval.starting_at(cursor, required_duration)
                    status = self._classify(
                        candidate,
                        day.break_intervals,
                        booked_intervals,
                        past_before_seconds,
                    )
                    slots[cursor] = Slot(start=cursor, status=status)
                cursor += self.step_minutes

        return [slots[start] for start in sorted(slots)]

    @staticmethod
    def _past_cutoff_seconds(reference_now: DateTime, query_date: civil_date) -> int:
        """
        Seconds since midnight before which a slot on ``query_date`` is past.

        A whole day before today is past; a day after today has no cutoff.
        """
        today = reference_now.date()
        if query_date < today:
            return 24 * 60 * 60 + 1
        if query_date > today:
            return 0
        return reference_now.hour * 3600 + reference_now.minute * 60 + reference_now.second

    @staticmethod
    def _classify(
        candidate: TimeInterval,
        break_intervals: Sequence[TimeInterval],
        booked_intervals: Sequence[TimeInterval],
        past_before_seconds: int,
    ) -> SlotStatus:
        # Time-based exclusion dominates, then the schedule, then bookings.
        if candidate.start * 60 < past_before_seconds:
            return SlotStatus.PAST
        if overlaps_any(candidate, break_intervals):
            return SlotStatus.BREAK
        if overlaps_any(candidate, booked_intervals):
            return SlotStatus.BOOKED
        return SlotStatus.AVAILABLE


_default_generator = SlotGenerator()


def generate_slots(
    day: DailyAvailability,
    booked_intervals: Sequence[TimeInterval],
    required_duration: int,
    reference_now: DateTime,
    query_date: civil_date,
) -> List[Slot]:
    """Generate slots on the default quarter-hour grid."""
    return _default_generator.generate_slots(
        day=day,
        booked_intervals=booked_intervals,
        required_duration=required_duration,
        reference_now=reference_now,
        query_date=query_date,
    )
