"""
Domain layer - pure scheduling logic, no I/O.
"""

from .intervals import TimeInterval, contains, format_hhmm, merge, overlaps, parse_hhmm, subtract
from .models import (
    Appointment,
    AppointmentStatus,
    BookingProposal,
    DailyAvailability,
    PendingBooking,
    Professional,
    Service,
    Slot,
    SlotStatus,
    WeeklySchedule,
    Weekday,
)
from .slot_generator import SlotGenerator, generate_slots

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "BookingProposal",
    "DailyAvailability",
    "PendingBooking",
    "Professional",
    "Service",
    "Slot",
    "SlotGenerator",
    "SlotStatus",
    "TimeInterval",
    "WeeklySchedule",
    "Weekday",
    "contains",
    "format_hhmm",
    "generate_slots",
    "merge",
    "overlaps",
    "parse_hhmm",
    "subtract",
]
