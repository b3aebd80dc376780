"""
JSON-file backed appointment store used by the CLI.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import date as civil_date
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple

import pendulum
from filelock import FileLock, Timeout

from ..domain.exceptions import UpstreamUnavailable
from ..domain.models import Appointment, AppointmentStatus
from .memory_store import InMemoryAppointmentStore
from .serialization import appointment_from_dict, appointment_to_dict

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 10


class JsonFileAppointmentStore(InMemoryAppointmentStore):
    """
    Appointment store kept in a JSON file shared by every process using it.

    File layout::

        {
            "appointments": [{...}, ...],
            "versions": {"<professional_id>|<YYYY-MM-DD>": 3, ...}
        }

    Every operation holds an exclusive lock on ``<path>.lock`` and re-reads
    the file first, so version tokens are compared against what is on disk
    and a write never replaces appointments committed by another process.
    """

    def __init__(self, path: Path, lock_timeout: float = DEFAULT_LOCK_TIMEOUT):
        super().__init__()
        self.path = path
        self._file_lock = FileLock(f"{path}.lock", timeout=lock_timeout)
        with self._locked():
            self._reload()

    def snapshot(self, professional_id: str, day: civil_date) -> Tuple[List[Appointment], int]:
        with self._locked():
            self._reload()
            return super().snapshot(professional_id, day)

    def create(self, appointment: Appointment, expected_version: int) -> str:
        with self._locked():
            self._reload()
            return super().create(appointment, expected_version)

    def get(self, appointment_id: str) -> Appointment:
        with self._locked():
            self._reload()
            return super().get(appointment_id)

    def update_status(
        self,
        appointment_id: str,
        new_status: AppointmentStatus,
        reason: str | None = None,
    ) -> Appointment:
        with self._locked():
            self._reload()
            return super().update_status(appointment_id, new_status, reason)

    def all(self) -> List[Appointment]:
        with self._locked():
            self._reload()
            return super().all()

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold the cross-process lock on the appointment file."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file_lock.acquire()
        except Timeout as exc:
            raise UpstreamUnavailable(f"Appointment file {self.path} is locked by another process") from exc
        except OSError as exc:
            raise UpstreamUnavailable(f"Could not lock appointment file {self.path}: {exc}") from exc
        try:
            yield
        finally:
            self._file_lock.release()

    def _reload(self) -> None:
        data = self._read()
        with self._lock:
            self._appointments.clear()
            self._versions.clear()

            for record in data.get("appointments", []):
                appointment = appointment_from_dict(record)
                self._appointments[appointment.id] = appointment

            for key, version in data.get("versions", {}).items():
                professional_id, _, day = key.rpartition("|")
                try:
                    parsed_day = pendulum.from_format(day, "YYYY-MM-DD").date()
                except ValueError as exc:
                    raise ValueError(f"Invalid version key {key!r} in {self.path}") from exc
                self._versions[(professional_id, parsed_day)] = int(version)

        logger.debug("Loaded %s appointments from %s", len(self._appointments), self.path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f) or {}
        except OSError as exc:
            raise UpstreamUnavailable(f"Could not read appointment file {self.path}: {exc}") from exc
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValueError(f"Invalid JSON in {self.path}: {exc}") from exc

    def _persist(self) -> None:
        data: Dict[str, Any] = {
            "appointments": [
                appointment_to_dict(appointment)
                for appointment in sorted(
                    self._appointments.values(),
                    key=lambda appointment: (appointment.date, appointment.start_time),
                )
            ],
            "versions": {
                f"{professional_id}|{day.isoformat()}": version
                for (professional_id, day), version in self._versions.items()
                if version
            },
        }
        try:
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            tmp_path.replace(self.path)
        except OSError as exc:
            raise UpstreamUnavailable(f"Could not write appointment file {self.path}: {exc}") from exc
