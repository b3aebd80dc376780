"""
Application service computing a professional's bookable slots for a day.

The service validates the request, gathers the schedule and existing
bookings through the collaborator protocols and delegates the actual
classification to the domain-level ``SlotGenerator``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date as civil_date
from typing import Dict, List, Optional, Sequence

from ..clock import Clock
from ..domain.exceptions import InvalidRequest, NoAvailability
from ..domain.models import Professional, Service, Slot
from ..domain.slot_generator import SlotGenerator
from .protocols import AppointmentStore, ScheduleSource
from .retry import NO_RETRY, RetryPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedSelection:
    """Services chosen by the client, resolved against the catalog."""
    services: List[Service]
    total_duration_minutes: int
    total_price_cents: int

    @property
    def service_ids(self) -> List[str]:
        return [service.id for service in self.services]


def resolve_selection(
    professional: Professional,
    catalog: Sequence[Service],
    service_ids: Sequence[str],
) -> ResolvedSelection:
    """
    Resolve service ids into services the professional can perform.

    Raises:
        InvalidRequest: If nothing is selected, a service is unknown or not
            offered by the professional, or the total duration is zero
    """
    if not service_ids:
        raise InvalidRequest("Select at least one service.")

    by_id: Dict[str, Service] = {service.id: service for service in catalog}
    unknown = [service_id for service_id in service_ids if service_id not in by_id]
    if unknown:
        raise InvalidRequest(f"Unknown service(s): {', '.join(unknown)}.")

    if not professional.offers_all(service_ids):
        missing = [sid for sid in service_ids if sid not in professional.service_ids]
        raise InvalidRequest(
            f"{professional.name} does not offer: "
            f"{', '.join(by_id[sid].name for sid in missing)}."
        )

    # Preserve the client's order, ignore accidental duplicates
    services: List[Service] = []
    for service_id in dict.fromkeys(service_ids):
        services.append(by_id[service_id])

    total_duration = sum(service.duration_minutes for service in services)
    if total_duration <= 0:
        raise InvalidRequest("Select at least one service with a non-zero duration.")

    return ResolvedSelection(
        services=services,
        total_duration_minutes=total_duration,
        total_price_cents=sum(service.price_cents for service in services),
    )


@dataclass
class DaySlots:
    """Classified slots for one professional and day."""
    professional_id: str
    date: civil_date
    duration_minutes: int
    slots: List[Slot] = field(default_factory=list)
    no_availability_reason: Optional[str] = None

    @property
    def available_times(self) -> List[str]:
        return [slot.time for slot in self.slots if slot.is_available]

    @property
    def has_availability(self) -> bool:
        return self.no_availability_reason is None


class AvailabilityService:
    """
    Orchestrates schedule/booking retrieval and slot generation.

    Depends on protocols only, so the real stores or in-memory fakes can be
    plugged in.
    """

    def __init__(
        self,
        schedule_source: ScheduleSource,
        appointment_store: AppointmentStore,
        clock: Clock,
        slot_generator: SlotGenerator | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._schedule_source = schedule_source
        self._appointment_store = appointment_store
        self._clock = clock
        self._slot_generator = slot_generator or SlotGenerator()
        self._retry = retry_policy or NO_RETRY

    def load_selection(
        self,
        professional_id: str,
        service_ids: Sequence[str],
    ) -> tuple[Professional, ResolvedSelection]:
        """Fetch the professional and resolve the selected services."""
        if not service_ids:
            raise InvalidRequest("Select at least one service.")

        professional = self._retry.call(self._schedule_source.get_professional, professional_id)
        catalog = self._retry.call(self._schedule_source.get_services, professional.provider_id)
        return professional, resolve_selection(professional, catalog, service_ids)

    def get_day_slots(
        self,
        *,
        professional_id: str,
        service_ids: Sequence[str],
        day: civil_date,
    ) -> DaySlots:
        """
        Validate the request, then generate classified slots for ``day``.

        Raises:
            InvalidRequest: Before any appointment store access, for an empty
                or invalid selection or a date entirely in the past
            UpstreamUnavailable: If a collaborator stays unreachable after retries
        """
        now = self._clock.now()
        if day < now.date():
            raise InvalidRequest(f"{day.isoformat()} is in the past; pick today or a later date.")

        professional, selection = self.load_selection(professional_id, service_ids)
        daily = professional.weekly_schedule.for_date(day)

        result = DaySlots(
            professional_id=professional.id,
            date=day,
            duration_minutes=selection.total_duration_minutes,
        )

        if daily.is_day_off:
            result.no_availability_reason = NoAvailability.DAY_OFF
            return result

        appointments = self._retry.call(
            self._appointment_store.list_non_cancelled, professional.id, day
        )
        booked_intervals = [appointment.interval for appointment in appointments if appointment.is_active]

        result.slots = self._slot_generator.generate_slots(
            day=daily,
            booked_intervals=booked_intervals,
            required_duration=selection.total_duration_minutes,
            reference_now=now,
            query_date=day,
        )
        if not result.available_times:
            result.no_availability_reason = NoAvailability.FULLY_BOOKED

        logger.debug(
            "Generated %s slots (%s available) for %s on %s",
            len(result.slots),
            len(result.available_times),
            professional.id,
            day.isoformat(),
        )
        return result

    def available_times(
        self,
        *,
        professional_id: str,
        service_ids: Sequence[str],
        day: civil_date,
    ) -> List[str]:
        """
        Return only the bookable start times.

        Raises:
            NoAvailability: If the day is off or no slot is available
        """
        result = self.get_day_slots(
            professional_id=professional_id,
            service_ids=service_ids,
            day=day,
        )
        if not result.has_availability:
            raise NoAvailability(result.no_availability_reason)
        return result.available_times
