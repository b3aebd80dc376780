"""
JSON-compatible representation of appointments, shared by the file and
HTTP stores.
"""

from typing import Any, Dict

import pendulum

from ..domain.intervals import format_hhmm, parse_hhmm
from ..domain.models import Appointment, AppointmentStatus


def appointment_to_dict(appointment: Appointment) -> Dict[str, Any]:
    return {
        "id": appointment.id,
        "provider_id": appointment.provider_id,
        "professional_id": appointment.professional_id,
        "client_id": appointment.client_id,
        "service_ids": list(appointment.service_ids),
        "date": appointment.date.isoformat(),
        "start_time": format_hhmm(appointment.start_time),
        "total_duration_minutes": appointment.total_duration_minutes,
        "total_price_cents": appointment.total_price_cents,
        "status": appointment.status.value,
        "created_at": appointment.created_at.to_iso8601_string() if appointment.created_at else None,
        "cancellation_reason": appointment.cancellation_reason,
    }


def appointment_from_dict(data: Dict[str, Any]) -> Appointment:
    """
    Parse a stored appointment record.

    Raises:
        ValueError: If a field is missing or malformed
    """
    try:
        created_at = data.get("created_at")
        return Appointment(
            id=str(data["id"]),
            provider_id=data["provider_id"],
            professional_id=data["professional_id"],
            client_id=data["client_id"],
            service_ids=list(data["service_ids"]),
            date=pendulum.from_format(data["date"], "YYYY-MM-DD").date(),
            start_time=parse_hhmm(data["start_time"]),
            total_duration_minutes=int(data["total_duration_minutes"]),
            total_price_cents=int(data.get("total_price_cents", 0)),
            status=AppointmentStatus(data["status"]),
            created_at=pendulum.parse(created_at) if created_at else None,
            cancellation_reason=data.get("cancellation_reason"),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Invalid appointment record: {exc}") from exc
