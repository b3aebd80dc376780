"""
Protocols describing the external collaborators the services depend on.

The schedule source and appointment store are external systems; any
adapter matching these protocols can be plugged in.
"""

from __future__ import annotations

from datetime import date as civil_date
from typing import List, Protocol, Tuple

from ..domain.models import Appointment, AppointmentStatus, Professional, Service


class ScheduleSource(Protocol):
    """Read access to professionals, their weekly schedules and services."""

    def get_professional(self, professional_id: str) -> Professional:
        """Return the professional, including their weekly schedule."""

    def get_services(self, provider_id: str) -> List[Service]:
        """Return the services offered by a provider."""

    def requires_confirmation(self, provider_id: str) -> bool:
        """Whether new bookings for this provider start as pending."""


class AppointmentStore(Protocol):
    """
    Durable appointment storage.

    ``snapshot`` and ``create`` form a compare-and-set pair on a
    per-professional-per-day version token.
    """

    def list_non_cancelled(self, professional_id: str, day: civil_date) -> List[Appointment]:
        """Return all non-cancelled appointments for the professional on ``day``."""

    def snapshot(self, professional_id: str, day: civil_date) -> Tuple[List[Appointment], int]:
        """Return the non-cancelled appointments together with the day's version token."""

    def create(self, appointment: Appointment, expected_version: int) -> str:
        """Persist a new appointment if the day's version still matches; return its id."""

    def get(self, appointment_id: str) -> Appointment:
        """Return a stored appointment."""

    def update_status(
        self,
        appointment_id: str,
        new_status: AppointmentStatus,
        reason: str | None = None,
    ) -> Appointment:
        """Change an appointment's status; appointments are never deleted."""


class DraftStorage(Protocol):
    """Session-scoped single-slot storage for a serialized pending booking."""

    def save(self, raw: str) -> None:
        """Store the draft, replacing any previous one."""

    def load(self) -> str | None:
        """
        Return the stored draft, if any.

        Raises:
            DraftCorrupt: If the stored bytes cannot be read back as text
        """

    def clear(self) -> None:
        """Forget the stored draft."""
