"""
In-process appointment store with per-day optimistic concurrency.
"""

from __future__ import annotations

import dataclasses
import threading
import uuid
from collections import defaultdict
from datetime import date as civil_date
from typing import Dict, List, Tuple

from ..domain.exceptions import AppointmentNotFound, VersionConflict
from ..domain.models import Appointment, AppointmentStatus

DayKey = Tuple[str, civil_date]


class InMemoryAppointmentStore:
    """
    Appointment store kept in memory.

    Every write to a professional's day bumps that day's version token.
    ``create`` only succeeds when the caller's token is still current, and
    the check and the write happen under one lock, so a read-validate-write
    cycle cannot suffer write skew.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._appointments: Dict[str, Appointment] = {}
        self._versions: Dict[DayKey, int] = defaultdict(int)

    def list_non_cancelled(self, professional_id: str, day: civil_date) -> List[Appointment]:
        appointments, _ = self.snapshot(professional_id, day)
        return appointments

    def snapshot(self, professional_id: str, day: civil_date) -> Tuple[List[Appointment], int]:
        with self._lock:
            appointments = [
                dataclasses.replace(appointment)
                for appointment in self._appointments.values()
                if appointment.professional_id == professional_id
                and appointment.date == day
                and appointment.is_active
            ]
            appointments.sort(key=lambda appointment: appointment.start_time)
            return appointments, self._versions[(professional_id, day)]

    def create(self, appointment: Appointment, expected_version: int) -> str:
        key = (appointment.professional_id, appointment.date)
        with self._lock:
            current = self._versions[key]
            if current != expected_version:
                raise VersionConflict(
                    f"Version of {appointment.professional_id}/{appointment.date.isoformat()} "
                    f"is {current}, expected {expected_version}"
                )
            appointment_id = appointment.id or uuid.uuid4().hex[:12]
            self._appointments[appointment_id] = dataclasses.replace(appointment, id=appointment_id)
            self._versions[key] = current + 1
            self._persist()
            return appointment_id

    def get(self, appointment_id: str) -> Appointment:
        with self._lock:
            try:
                return dataclasses.replace(self._appointments[appointment_id])
            except KeyError:
                raise AppointmentNotFound(f"Appointment {appointment_id} not found.") from None

    def update_status(
        self,
        appointment_id: str,
        new_status: AppointmentStatus,
        reason: str | None = None,
    ) -> Appointment:
        with self._lock:
            current = self.get(appointment_id)
            updated = dataclasses.replace(
                current,
                status=new_status,
                cancellation_reason=reason if reason is not None else current.cancellation_reason,
            )
            self._appointments[appointment_id] = updated
            self._versions[(updated.professional_id, updated.date)] += 1
            self._persist()
            return dataclasses.replace(updated)

    def all(self) -> List[Appointment]:
        """Every stored appointment, including cancelled ones."""
        with self._lock:
            return sorted(
                (dataclasses.replace(appointment) for appointment in self._appointments.values()),
                key=lambda appointment: (appointment.date, appointment.start_time),
            )

    def _persist(self) -> None:
        """Hook for durable subclasses; called under the lock after each write."""
