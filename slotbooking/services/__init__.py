"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability import AvailabilityService, DaySlots, ResolvedSelection, resolve_selection
from .booking import BookingService
from .booking_guard import BookingConflictGuard
from .protocols import AppointmentStore, DraftStorage, ScheduleSource
from .recovery import DraftState, PendingBookingRecovery
from .retry import RetryPolicy

__all__ = [
    "AppointmentStore",
    "AvailabilityService",
    "BookingConflictGuard",
    "BookingService",
    "DaySlots",
    "DraftState",
    "DraftStorage",
    "PendingBookingRecovery",
    "ResolvedSelection",
    "RetryPolicy",
    "ScheduleSource",
    "resolve_selection",
]
