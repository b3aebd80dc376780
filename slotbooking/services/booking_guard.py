"""
Commit-time conflict guard for new appointments.

Slot lists shown to clients are computed from a snapshot that may be stale
by the time the client confirms. The guard re-reads the professional's day
immediately before writing and only commits when no non-cancelled
appointment overlaps the proposal. The write is a compare-and-set on the
day's version token, so two concurrent confirmations for the same
professional and day cannot both pass the overlap check.
"""

from __future__ import annotations

import logging
from typing import List

from ..clock import Clock
from ..domain.exceptions import SlotConflict, VersionConflict
from ..domain.intervals import overlaps
from ..domain.models import Appointment, AppointmentStatus, BookingProposal
from .protocols import AppointmentStore
from .retry import NO_RETRY, RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_MAX_COMMIT_ATTEMPTS = 5


class BookingConflictGuard:
    """Validates a proposal against the latest store state and commits it."""

    def __init__(
        self,
        appointment_store: AppointmentStore,
        clock: Clock,
        max_commit_attempts: int = DEFAULT_MAX_COMMIT_ATTEMPTS,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        if max_commit_attempts < 1:
            raise ValueError(f"max_commit_attempts must be >= 1, got {max_commit_attempts}")
        self._store = appointment_store
        self._clock = clock
        self._max_commit_attempts = max_commit_attempts
        self._retry = retry_policy or NO_RETRY

    def validate_and_commit(self, proposed: BookingProposal) -> str:
        """
        Re-validate ``proposed`` against current bookings and persist it.

        Returns:
            The new appointment id

        Raises:
            SlotConflict: If an existing appointment overlaps, or concurrent
                writers kept invalidating the day's version token
            UpstreamUnavailable: If the store stays unreachable after retries
        """
        for attempt in range(1, self._max_commit_attempts + 1):
            existing, version = self._retry.call(
                self._store.snapshot, proposed.professional_id, proposed.date
            )

            conflicting = self.find_conflicts(proposed, existing)
            if conflicting:
                logger.warning(
                    "Rejected booking for %s on %s at %s: overlaps %s",
                    proposed.professional_id,
                    proposed.date.isoformat(),
                    proposed.interval,
                    ", ".join(conflicting),
                )
                raise SlotConflict(
                    f"The {proposed.interval} slot on {proposed.date.isoformat()} "
                    f"is no longer available. Please pick another time.",
                    conflicting_ids=conflicting,
                )

            appointment = self._build_appointment(proposed)
            try:
                appointment_id = self._store.create(appointment, expected_version=version)
            except VersionConflict:
                logger.warning(
                    "Concurrent booking on %s/%s, re-validating (attempt %s/%s)",
                    proposed.professional_id,
                    proposed.date.isoformat(),
                    attempt,
                    self._max_commit_attempts,
                )
                continue

            logger.info(
                "Booked %s for %s on %s at %s (%s)",
                appointment_id,
                proposed.professional_id,
                proposed.date.isoformat(),
                proposed.interval,
                appointment.status.value,
            )
            return appointment_id

        raise SlotConflict(
            "This time is being booked by someone else right now. "
            "Please refresh the available times and try again."
        )

    @staticmethod
    def find_conflicts(proposed: BookingProposal, existing: List[Appointment]) -> List[str]:
        """Return the ids of active appointments overlapping the proposal."""
        return [
            appointment.id
            for appointment in existing
            if appointment.is_active
            and appointment.professional_id == proposed.professional_id
            and appointment.date == proposed.date
            and overlaps(appointment.interval, proposed.interval)
        ]

    def _build_appointment(self, proposed: BookingProposal) -> Appointment:
        status = (
            AppointmentStatus.PENDING
            if proposed.requires_confirmation
            else AppointmentStatus.CONFIRMED
        )
        return Appointment(
            provider_id=proposed.provider_id,
            professional_id=proposed.professional_id,
            client_id=proposed.client_id,
            service_ids=list(proposed.service_ids),
            date=proposed.date,
            start_time=proposed.start_time,
            total_duration_minutes=proposed.duration_minutes,
            total_price_cents=proposed.total_price_cents,
            status=status,
            created_at=self._clock.now(),
        )
