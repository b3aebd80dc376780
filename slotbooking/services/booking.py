"""
Booking flow: turn a client's selection into a committed appointment and
manage the appointment status lifecycle afterwards.
"""

from __future__ import annotations

import logging
from datetime import date as civil_date
from typing import Dict, FrozenSet, List, Sequence

from ..clock import Clock
from ..domain.exceptions import InvalidRequest, InvalidStatusTransition
from ..domain.intervals import MINUTES_PER_DAY, contains, overlaps_any, parse_hhmm
from ..domain.models import (
    Appointment,
    AppointmentStatus,
    BookingProposal,
    PendingBooking,
    local_datetime,
)
from .availability import AvailabilityService
from .booking_guard import BookingConflictGuard
from .protocols import AppointmentStore, ScheduleSource
from .retry import NO_RETRY, RetryPolicy

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


class BookingService:
    """
    Entry point for creating appointments and transitioning their status.

    Every new appointment goes through the ``BookingConflictGuard``; there
    is no other write path.
    """

    def __init__(
        self,
        availability: AvailabilityService,
        schedule_source: ScheduleSource,
        appointment_store: AppointmentStore,
        guard: BookingConflictGuard,
        clock: Clock,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._availability = availability
        self._schedule_source = schedule_source
        self._store = appointment_store
        self._guard = guard
        self._clock = clock
        self._retry = retry_policy or NO_RETRY

    def confirm(
        self,
        *,
        client_id: str,
        provider_id: str,
        professional_id: str,
        service_ids: Sequence[str],
        day: civil_date,
        time: str,
    ) -> str:
        """
        Validate a client's selection and commit it through the guard.

        Returns:
            The new appointment id

        Raises:
            InvalidRequest: For an invalid selection or a start time that
                passed or falls outside the professional's working hours
            SlotConflict: If the slot was taken in the meantime
        """
        if not client_id:
            raise InvalidRequest("A signed-in client is required to book.")
        if not service_ids:
            raise InvalidRequest("Select at least one service.")

        try:
            start = parse_hhmm(time)
        except ValueError as exc:
            raise InvalidRequest(str(exc)) from exc

        professional, selection = self._availability.load_selection(professional_id, service_ids)
        if professional.provider_id != provider_id:
            raise InvalidRequest(f"{professional.name} does not work for this provider.")

        duration = selection.total_duration_minutes
        if start + duration > MINUTES_PER_DAY:
            raise InvalidRequest("The selected services do not fit before midnight.")

        now = self._clock.now()
        start_at = local_datetime(day, start, now.timezone_name)
        if start_at < now:
            raise InvalidRequest(f"{day.isoformat()} {time} has already passed; pick a later time.")

        daily = professional.weekly_schedule.for_date(day)
        fits_work = not daily.is_day_off and any(
            contains(work, start, duration) for work in daily.work_intervals
        )
        proposal = BookingProposal(
            provider_id=provider_id,
            professional_id=professional.id,
            client_id=client_id,
            service_ids=tuple(selection.service_ids),
            date=day,
            start_time=start,
            duration_minutes=duration,
            total_price_cents=selection.total_price_cents,
            requires_confirmation=self._retry.call(
                self._schedule_source.requires_confirmation, provider_id
            ),
        )
        if not fits_work or overlaps_any(proposal.interval, daily.break_intervals):
            raise InvalidRequest(
                f"{professional.name} is not working at {time} on {day.isoformat()}."
            )

        return self._guard.validate_and_commit(proposal)

    def confirm_draft(self, draft: PendingBooking, client_id: str) -> str:
        """Replay a pending booking draft exactly like a normal confirmation."""
        return self.confirm(
            client_id=client_id,
            provider_id=draft.provider_id,
            professional_id=draft.professional_id,
            service_ids=draft.service_ids,
            day=draft.date,
            time=draft.time,
        )

    def update_status(
        self,
        appointment_id: str,
        new_status: AppointmentStatus,
        reason: str | None = None,
    ) -> Appointment:
        """
        Transition an appointment's status.

        Raises:
            InvalidStatusTransition: If the transition is not allowed, or an
                appointment is completed before it has ended
            AppointmentNotFound: If the id is unknown
        """
        appointment = self._retry.call(self._store.get, appointment_id)

        if new_status not in ALLOWED_TRANSITIONS[appointment.status]:
            raise InvalidStatusTransition(
                f"Cannot change appointment {appointment_id} from "
                f"{appointment.status.value} to {new_status.value}."
            )

        if new_status is AppointmentStatus.COMPLETED:
            now = self._clock.now()
            if now < appointment.ends_at(now.timezone_name):
                raise InvalidStatusTransition(
                    f"Appointment {appointment_id} cannot be completed before it ends."
                )

        updated = self._retry.call(self._store.update_status, appointment_id, new_status, reason)
        logger.info(
            "Appointment %s: %s -> %s",
            appointment_id,
            appointment.status.value,
            new_status.value,
        )
        return updated

    def accept(self, appointment_id: str) -> Appointment:
        """Provider confirms a pending request."""
        return self.update_status(appointment_id, AppointmentStatus.CONFIRMED)

    def decline(self, appointment_id: str, reason: str) -> Appointment:
        """Provider refuses a pending request; a reason is mandatory."""
        if not reason or not reason.strip():
            raise InvalidRequest("A reason is required to decline a booking request.")
        appointment = self._retry.call(self._store.get, appointment_id)
        if appointment.status is not AppointmentStatus.PENDING:
            raise InvalidStatusTransition(
                f"Only pending requests can be declined; {appointment_id} is {appointment.status.value}."
            )
        return self.update_status(appointment_id, AppointmentStatus.CANCELLED, reason.strip())

    def cancel(self, appointment_id: str, reason: str | None = None) -> Appointment:
        return self.update_status(appointment_id, AppointmentStatus.CANCELLED, reason)

    def complete(self, appointment_id: str) -> Appointment:
        return self.update_status(appointment_id, AppointmentStatus.COMPLETED)

    def pending_issues(self, professional_id: str, day: civil_date) -> List[Appointment]:
        """Pending requests whose start time already passed without an answer."""
        now = self._clock.now()
        appointments = self._retry.call(self._store.list_non_cancelled, professional_id, day)
        return [
            appointment
            for appointment in appointments
            if appointment.status is AppointmentStatus.PENDING
            and appointment.starts_at(now.timezone_name) <= now
        ]
