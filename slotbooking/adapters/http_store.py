"""
Appointment store backed by a REST booking backend.
"""

from __future__ import annotations

from datetime import date as civil_date
from typing import Any, Dict, List, Tuple

import requests

from ..domain.exceptions import (
    AppointmentNotFound,
    InvalidRequest,
    UpstreamUnavailable,
    VersionConflict,
)
from ..domain.models import Appointment, AppointmentStatus
from .serialization import appointment_from_dict, appointment_to_dict


class HttpAppointmentStore:
    """
    Client for the booking backend's appointment endpoints.

    Endpoints used:
        GET   /professionals/{id}/appointments?date=YYYY-MM-DD
              -> {"appointments": [...], "version": 3}
        POST  /appointments  (If-Match: <version>)  -> {"id": "..."}
        GET   /appointments/{id}
        PATCH /appointments/{id}  {"status": ..., "cancellation_reason": ...}

    The backend answers 409 or 412 when the If-Match version is stale.
    """

    def __init__(self, base_url: str, api_token: str | None = None, timeout: float = 10):
        """
        Initialize the client.

        Args:
            base_url: Root URL of the booking backend
            api_token: Optional bearer token
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json"}
        if api_token:
            self.headers["Authorization"] = f"Bearer {api_token}"

    def list_non_cancelled(self, professional_id: str, day: civil_date) -> List[Appointment]:
        appointments, _ = self.snapshot(professional_id, day)
        return appointments

    def snapshot(self, professional_id: str, day: civil_date) -> Tuple[List[Appointment], int]:
        data = self._request(
            "GET",
            f"/professionals/{professional_id}/appointments",
            params={"date": day.isoformat()},
        )
        appointments = [
            appointment
            for appointment in (self._parse(record) for record in data.get("appointments", []))
            if appointment.is_active
        ]
        appointments.sort(key=lambda appointment: appointment.start_time)
        return appointments, int(data.get("version", 0))

    def create(self, appointment: Appointment, expected_version: int) -> str:
        payload = appointment_to_dict(appointment)
        payload.pop("id")
        data = self._request(
            "POST",
            "/appointments",
            json=payload,
            headers={"If-Match": str(expected_version)},
        )
        return str(data["id"])

    def get(self, appointment_id: str) -> Appointment:
        return self._parse(self._request("GET", f"/appointments/{appointment_id}"))

    def update_status(
        self,
        appointment_id: str,
        new_status: AppointmentStatus,
        reason: str | None = None,
    ) -> Appointment:
        payload: Dict[str, Any] = {"status": new_status.value}
        if reason is not None:
            payload["cancellation_reason"] = reason
        return self._parse(self._request("PATCH", f"/appointments/{appointment_id}", json=payload))

    def _request(self, method: str, path: str, headers: Dict[str, str] | None = None, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(
                method,
                url,
                headers={**self.headers, **(headers or {})},
                timeout=self.timeout,
                **kwargs,
            )
        except requests.exceptions.RequestException as exc:
            raise UpstreamUnavailable(f"Booking backend unreachable: {exc}") from exc

        if response.status_code in (409, 412):
            raise VersionConflict(f"{method} {path} rejected: stale version")
        if response.status_code == 404:
            raise AppointmentNotFound(f"{path} not found.")
        if response.status_code >= 500:
            raise UpstreamUnavailable(
                f"Booking backend error {response.status_code} on {method} {path}"
            )

        try:
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as exc:
            raise InvalidRequest(f"Booking backend rejected {method} {path}: {exc}") from exc
        except ValueError as exc:
            raise UpstreamUnavailable(f"Invalid JSON from booking backend: {exc}") from exc

    @staticmethod
    def _parse(record: Dict[str, Any]) -> Appointment:
        try:
            return appointment_from_dict(record)
        except ValueError as exc:
            raise UpstreamUnavailable(f"Malformed appointment from booking backend: {exc}") from exc
