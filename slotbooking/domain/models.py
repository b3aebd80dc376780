"""
Domain models for schedules, services, appointments and slots.
"""

from dataclasses import dataclass, field
from datetime import date as civil_date
from enum import Enum, IntEnum
from typing import Any, Dict, List, Mapping, Sequence, Tuple

import pendulum
from pendulum import DateTime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .intervals import MINUTES_PER_DAY, TimeInterval, format_hhmm, parse_hhmm


def local_datetime(day: civil_date, minutes: int, timezone: str) -> DateTime:
    """
    Wall-clock ``minutes`` since midnight on ``day`` in ``timezone``.

    Built from the hour and minute rather than by adding minutes to
    midnight, so the result keeps its wall-clock time on DST change days.
    ``24:00`` is midnight of the next day.
    """
    if minutes == MINUTES_PER_DAY:
        return pendulum.datetime(day.year, day.month, day.day, tz=timezone).add(days=1)
    return pendulum.datetime(day.year, day.month, day.day, minutes // 60, minutes % 60, tz=timezone)


class Weekday(IntEnum):
    """Day of week, Sunday first."""
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def for_date(cls, day: civil_date) -> "Weekday":
        """Return the weekday of a civil date."""
        return cls(day.isoweekday() % 7)

    @classmethod
    def from_name(cls, name: str) -> "Weekday":
        """Resolve ``"monday"``/``"Monday"`` to a weekday."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown day of week: {name!r}") from None


@dataclass(frozen=True)
class DailyAvailability:
    """
    Working hours of one professional on one day of the week.

    A lunch break can be expressed either as an explicit break interval or
    by splitting the day into disjoint work intervals; both are supported.
    """
    is_day_off: bool = False
    work_intervals: Tuple[TimeInterval, ...] = ()
    break_intervals: Tuple[TimeInterval, ...] = ()

    @classmethod
    def day_off(cls) -> "DailyAvailability":
        return cls(is_day_off=True)

    def working_minutes(self) -> int:
        """Total working minutes, ignoring breaks."""
        if self.is_day_off:
            return 0
        return sum(interval.duration_minutes() for interval in self.work_intervals)


@dataclass(frozen=True)
class WeeklySchedule:
    """
    Seven daily records owned by a professional.

    Days without an entry are treated as days off.
    """
    days: Mapping[Weekday, DailyAvailability] = field(default_factory=dict)

    def for_weekday(self, weekday: Weekday) -> DailyAvailability:
        return self.days.get(weekday) or DailyAvailability.day_off()

    def for_date(self, day: civil_date) -> DailyAvailability:
        """Resolve the daily record that applies to a civil date."""
        return self.for_weekday(Weekday.for_date(day))

    def ordered(self) -> List[Tuple[Weekday, DailyAvailability]]:
        """All seven days, Sunday first."""
        return [(weekday, self.for_weekday(weekday)) for weekday in Weekday]

    @classmethod
    def from_legacy(cls, weekdays: Mapping[str, Mapping[str, Any]]) -> "WeeklySchedule":
        """
        Convert the older single-range per-day shape into a weekly schedule.

        The legacy shape maps lowercase day names to
        ``{"active": bool, "startTime": "HH:MM", "endTime": "HH:MM"}``
        (``isOpen`` was used as an alias of ``active``). It has no
        break support, so each open day becomes a single work interval.
        """
        days: Dict[Weekday, DailyAvailability] = {}
        for name, record in weekdays.items():
            weekday = Weekday.from_name(name)
            is_open = bool(record.get("active", record.get("isOpen", False)))
            if not is_open:
                days[weekday] = DailyAvailability.day_off()
                continue
            interval = TimeInterval.parse(record["startTime"], record["endTime"])
            days[weekday] = DailyAvailability(work_intervals=(interval,))
        return cls(days=days)


@dataclass(frozen=True)
class Service:
    """A bookable service offered by a provider."""
    id: str
    name: str
    duration_minutes: int
    price_cents: int
    provider_id: str


@dataclass
class Professional:
    """A staff member who performs a subset of the provider's services."""
    id: str
    name: str
    provider_id: str
    service_ids: List[str] = field(default_factory=list)
    weekly_schedule: WeeklySchedule = field(default_factory=WeeklySchedule)

    def offers_all(self, service_ids: Sequence[str]) -> bool:
        """Check whether every requested service is offered by this professional."""
        offered = set(self.service_ids)
        return all(service_id in offered for service_id in service_ids)


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class Appointment:
    """
    A booking of one professional for one or more services.

    Appointments are never deleted, only status-transitioned.
    """
    provider_id: str
    professional_id: str
    client_id: str
    service_ids: List[str]
    date: civil_date
    start_time: int  # minutes since midnight
    total_duration_minutes: int
    status: AppointmentStatus = AppointmentStatus.PENDING
    total_price_cents: int = 0
    created_at: DateTime | None = None
    cancellation_reason: str | None = None
    id: str = ""

    @property
    def end_time(self) -> int:
        return self.start_time + self.total_duration_minutes

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval.starting_at(self.start_time, self.total_duration_minutes)

    @property
    def is_active(self) -> bool:
        """Cancelled appointments no longer occupy their interval."""
        return self.status is not AppointmentStatus.CANCELLED

    def starts_at(self, timezone: str) -> DateTime:
        return local_datetime(self.date, self.start_time, timezone)

    def ends_at(self, timezone: str) -> DateTime:
        return local_datetime(self.date, self.end_time, timezone)

    def __str__(self) -> str:
        return f"{self.date.isoformat()} {self.interval} [{self.status.value}]"


class SlotStatus(str, Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    BREAK = "break"
    PAST = "past"


@dataclass(frozen=True)
class Slot:
    """A generated slot candidate. Produced fresh on every query, never stored."""
    start: int
    status: SlotStatus

    @property
    def time(self) -> str:
        return format_hhmm(self.start)

    @property
    def is_available(self) -> bool:
        return self.status is SlotStatus.AVAILABLE


@dataclass(frozen=True)
class BookingProposal:
    """A fully resolved booking request, ready for commit-time validation."""
    provider_id: str
    professional_id: str
    client_id: str
    service_ids: Tuple[str, ...]
    date: civil_date
    start_time: int
    duration_minutes: int
    total_price_cents: int = 0
    requires_confirmation: bool = False

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval.starting_at(self.start_time, self.duration_minutes)


class PendingBooking(BaseModel):
    """
    Client-side draft kept across an authentication redirect.

    This is the single canonical shape written to draft storage.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    provider_id: str = Field(min_length=1)
    professional_id: str = Field(min_length=1)
    service_ids: List[str] = Field(min_length=1)
    date: civil_date
    time: str

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        """Normalise the start time to ``HH:MM``."""
        minutes = parse_hhmm(value)
        if minutes >= 24 * 60:
            raise ValueError("Start time must be before midnight")
        return format_hhmm(minutes)

    @property
    def start_minutes(self) -> int:
        return parse_hhmm(self.time)
