"""
Domain-specific exception hierarchy for the booking engine.
"""

from typing import Sequence


class BookingError(Exception):
    """Base class for all application-level errors."""


class InvalidRequest(BookingError):
    """Raised when a booking or availability request is malformed.

    Covers empty service selections, zero total duration, services the
    professional does not offer, and dates or times that already passed.
    """


class NoAvailability(BookingError):
    """Raised when a day yields no bookable slot at all."""

    DAY_OFF = "day_off"
    FULLY_BOOKED = "fully_booked"

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        super().__init__(message or f"No availability ({reason})")


class SlotConflict(BookingError):
    """Raised when a proposed booking overlaps an existing appointment."""

    def __init__(self, message: str, conflicting_ids: Sequence[str] = ()):
        self.conflicting_ids = tuple(conflicting_ids)
        super().__init__(message)


class UpstreamUnavailable(BookingError):
    """Raised when the schedule source or appointment store cannot be reached."""


class DraftCorrupt(BookingError):
    """Raised when a stored pending-booking draft cannot be used."""


class InvalidStatusTransition(BookingError):
    """Raised when an appointment status change is not allowed."""


class AppointmentNotFound(BookingError):
    """Raised when an appointment id is unknown to the store."""


class VersionConflict(BookingError):
    """Raised by a store when a compare-and-set on a day's version token fails."""
