"""Shared test fixtures."""

import pendulum
import pytest

from slotbooking.adapters.catalog import CatalogScheduleSource
from slotbooking.adapters.draft_storage import MemoryDraftStorage
from slotbooking.adapters.memory_store import InMemoryAppointmentStore
from slotbooking.clock import FixedClock
from slotbooking.config import AppConfig
from slotbooking.services.availability import AvailabilityService
from slotbooking.services.booking import BookingService
from slotbooking.services.booking_guard import BookingConflictGuard
from slotbooking.services.recovery import PendingBookingRecovery
from slotbooking.services.retry import RetryPolicy

TZ = "America/Sao_Paulo"

CATALOG = {
    "timezone": TZ,
    "booking": {
        "upstream_retry_attempts": 3,
        "upstream_retry_base_delay": 0,
        "upstream_retry_max_delay": 0,
    },
    "providers": [
        {
            "id": "shop",
            "name": "Barbearia Centro",
            "services": [
                {"id": "cut", "name": "Haircut", "duration_minutes": 30, "price_cents": 4500},
                {"id": "beard", "name": "Beard trim", "duration_minutes": 15, "price_cents": 2500},
                {"id": "free", "name": "Consultation", "duration_minutes": 0, "price_cents": 0},
            ],
            "professionals": [
                {
                    "id": "ana",
                    "name": "Ana",
                    "services": ["cut", "beard", "free"],
                    "availability": [
                        {"day_of_week": "Sunday", "is_day_off": True},
                        {
                            "day_of_week": "Monday",
                            "work_intervals": [{"start": "09:00", "end": "18:00"}],
                            "break_intervals": [{"start": "12:00", "end": "13:00"}],
                        },
                        {
                            "day_of_week": "Tuesday",
                            "work_intervals": [
                                {"start": "09:00", "end": "12:00"},
                                {"start": "13:00", "end": "18:00"},
                            ],
                        },
                    ],
                },
                {
                    "id": "bruno",
                    "name": "Bruno",
                    "services": ["cut"],
                    "availability": [
                        {
                            "day_of_week": "Monday",
                            "work_intervals": [{"start": "09:00", "end": "12:00"}],
                        },
                    ],
                },
            ],
        },
        {
            "id": "studio",
            "name": "Studio Bela",
            "requires_confirmation": True,
            "services": [
                {"id": "nails", "name": "Manicure", "duration_minutes": 45, "price_cents": 3500},
            ],
            "professionals": [
                {
                    "id": "carla",
                    "name": "Carla",
                    "services": ["nails"],
                    "availability": [
                        {
                            "day_of_week": "Monday",
                            "work_intervals": [{"start": "10:00", "end": "19:00"}],
                        },
                    ],
                },
            ],
        },
    ],
}

MONDAY = pendulum.date(2024, 11, 25)


def at(value: str) -> pendulum.DateTime:
    return pendulum.parse(value, tz=TZ)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(**CATALOG)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(at("2024-11-25T08:00:00"))


@pytest.fixture
def store() -> InMemoryAppointmentStore:
    return InMemoryAppointmentStore()


@pytest.fixture
def source(config) -> CatalogScheduleSource:
    return CatalogScheduleSource(config)


@pytest.fixture
def retry_policy() -> RetryPolicy:
    return RetryPolicy(attempts=3, base_delay=0, max_delay=0, sleep=lambda _: None)


@pytest.fixture
def availability(source, store, clock, retry_policy) -> AvailabilityService:
    return AvailabilityService(
        schedule_source=source,
        appointment_store=store,
        clock=clock,
        retry_policy=retry_policy,
    )


@pytest.fixture
def guard(store, clock) -> BookingConflictGuard:
    return BookingConflictGuard(appointment_store=store, clock=clock)


@pytest.fixture
def booking(availability, source, store, guard, clock) -> BookingService:
    return BookingService(
        availability=availability,
        schedule_source=source,
        appointment_store=store,
        guard=guard,
        clock=clock,
    )


@pytest.fixture
def draft_storage() -> MemoryDraftStorage:
    return MemoryDraftStorage()


@pytest.fixture
def recovery(draft_storage, booking) -> PendingBookingRecovery:
    return PendingBookingRecovery(draft_storage, booking)
