"""
Tests for the commit-time conflict guard.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from slotbooking.adapters.memory_store import InMemoryAppointmentStore
from slotbooking.domain.exceptions import SlotConflict, UpstreamUnavailable, VersionConflict
from slotbooking.domain.intervals import overlaps, parse_hhmm
from slotbooking.domain.models import Appointment, AppointmentStatus, BookingProposal, SlotStatus
from slotbooking.services.booking_guard import BookingConflictGuard
from tests.conftest import MONDAY


def proposal(time="10:00", duration=30, professional_id="ana", client_id="c1", requires_confirmation=False):
    return BookingProposal(
        provider_id="shop",
        professional_id=professional_id,
        client_id=client_id,
        service_ids=("cut",),
        date=MONDAY,
        start_time=parse_hhmm(time),
        duration_minutes=duration,
        total_price_cents=4500,
        requires_confirmation=requires_confirmation,
    )


def sneak_in(store, time, duration=30, professional_id="ana"):
    """Write an appointment behind the guard's back."""
    _, version = store.snapshot(professional_id, MONDAY)
    return store.create(
        Appointment(
            provider_id="shop",
            professional_id=professional_id,
            client_id="other",
            service_ids=["cut"],
            date=MONDAY,
            start_time=parse_hhmm(time),
            total_duration_minutes=duration,
            status=AppointmentStatus.CONFIRMED,
        ),
        expected_version=version,
    )


class RacingStore(InMemoryAppointmentStore):
    """Another client books between the guard's snapshot and its create."""

    def __init__(self, racer_time):
        super().__init__()
        self.racer_time = racer_time
        self.snapshots = 0
        self.raced = False

    def snapshot(self, professional_id, day):
        self.snapshots += 1
        return super().snapshot(professional_id, day)

    def create(self, appointment, expected_version):
        if not self.raced:
            self.raced = True
            racer = Appointment(
                provider_id="shop",
                professional_id=appointment.professional_id,
                client_id="racer",
                service_ids=["cut"],
                date=appointment.date,
                start_time=parse_hhmm(self.racer_time),
                total_duration_minutes=30,
                status=AppointmentStatus.CONFIRMED,
            )
            super().create(racer, expected_version)
        return super().create(appointment, expected_version)


class AlwaysStaleStore(InMemoryAppointmentStore):
    def __init__(self):
        super().__init__()
        self.creates = 0

    def create(self, appointment, expected_version):
        self.creates += 1
        raise VersionConflict("someone else wrote first")


class BarrierStore(InMemoryAppointmentStore):
    """Holds every thread after its first snapshot until all have read."""

    def __init__(self, parties):
        super().__init__()
        self.barrier = threading.Barrier(parties)
        self.local = threading.local()

    def snapshot(self, professional_id, day):
        result = super().snapshot(professional_id, day)
        if not getattr(self.local, "waited", False):
            self.local.waited = True
            self.barrier.wait(timeout=5)
        return result


class TestValidateAndCommit:
    """Tests for validate_and_commit."""

    def test_commits_into_empty_day(self, guard, store):
        appointment_id = guard.validate_and_commit(proposal())
        appointment = store.get(appointment_id)

        assert appointment.status is AppointmentStatus.CONFIRMED
        assert appointment.start_time == 600
        assert appointment.total_price_cents == 4500
        assert appointment.created_at is not None

    def test_requires_confirmation_creates_pending(self, guard, store):
        appointment_id = guard.validate_and_commit(proposal(requires_confirmation=True))
        assert store.get(appointment_id).status is AppointmentStatus.PENDING

    def test_overlap_is_rejected_with_ids(self, guard, store):
        existing = sneak_in(store, "10:15")
        with pytest.raises(SlotConflict) as exc_info:
            guard.validate_and_commit(proposal("10:00"))
        assert exc_info.value.conflicting_ids == (existing,)
        assert len(store.all()) == 1

    def test_adjacent_booking_is_allowed(self, guard, store):
        sneak_in(store, "10:30")
        sneak_in(store, "09:30")
        guard.validate_and_commit(proposal("10:00"))
        assert len(store.all()) == 3

    def test_cancelled_appointment_does_not_block(self, guard, store):
        existing = sneak_in(store, "10:00")
        store.update_status(existing, AppointmentStatus.CANCELLED)
        guard.validate_and_commit(proposal("10:00"))

    def test_other_professional_does_not_block(self, guard, store):
        sneak_in(store, "10:00", professional_id="bruno")
        guard.validate_and_commit(proposal("10:00"))

    def test_same_proposal_twice_conflicts(self, guard):
        guard.validate_and_commit(proposal("10:00", client_id="c1"))
        with pytest.raises(SlotConflict):
            guard.validate_and_commit(proposal("10:00", client_id="c2"))

    def test_logs_rejection(self, guard, store, caplog):
        sneak_in(store, "10:00")
        with caplog.at_level("WARNING", logger="slotbooking.services.booking_guard"):
            with pytest.raises(SlotConflict):
                guard.validate_and_commit(proposal("10:00"))
        assert "Rejected booking for ana" in caplog.text


class TestOptimisticConcurrency:
    """Tests for the version-token compare-and-set."""

    def test_revalidates_after_unrelated_concurrent_write(self, clock):
        store = RacingStore(racer_time="15:00")
        guard = BookingConflictGuard(store, clock)

        appointment_id = guard.validate_and_commit(proposal("10:00"))

        assert store.snapshots == 2
        assert store.get(appointment_id).start_time == 600
        assert len(store.all()) == 2

    def test_concurrent_overlapping_write_wins(self, clock):
        store = RacingStore(racer_time="10:15")
        guard = BookingConflictGuard(store, clock)

        with pytest.raises(SlotConflict) as exc_info:
            guard.validate_and_commit(proposal("10:00"))

        assert len(exc_info.value.conflicting_ids) == 1
        assert len(store.all()) == 1

    def test_gives_up_after_max_attempts(self, clock):
        store = AlwaysStaleStore()
        guard = BookingConflictGuard(store, clock, max_commit_attempts=3)

        with pytest.raises(SlotConflict, match="being booked by someone else"):
            guard.validate_and_commit(proposal())
        assert store.creates == 3

    def test_invalid_max_attempts(self, store, clock):
        with pytest.raises(ValueError):
            BookingConflictGuard(store, clock, max_commit_attempts=0)

    def test_unreachable_store_surfaces(self, clock, retry_policy):
        class DownStore(InMemoryAppointmentStore):
            def snapshot(self, professional_id, day):
                raise UpstreamUnavailable("timeout")

        guard = BookingConflictGuard(DownStore(), clock, retry_policy=retry_policy)
        with pytest.raises(UpstreamUnavailable):
            guard.validate_and_commit(proposal())

    def test_parallel_confirmations_for_same_slot(self, clock):
        parties = 4
        store = BarrierStore(parties)
        guard = BookingConflictGuard(store, clock)

        def attempt(index):
            try:
                return guard.validate_and_commit(proposal("10:00", client_id=f"c{index}"))
            except SlotConflict:
                return None

        with ThreadPoolExecutor(max_workers=parties) as executor:
            results = list(executor.map(attempt, range(parties)))

        winners = [result for result in results if result is not None]
        assert len(winners) == 1
        assert len(store.all()) == 1

    def test_parallel_overlapping_proposals_never_overlap(self, clock):
        times = ["10:00", "10:15", "10:30", "10:45", "11:00", "11:15"]
        store = BarrierStore(len(times))
        guard = BookingConflictGuard(store, clock, max_commit_attempts=10)

        def attempt(time):
            try:
                guard.validate_and_commit(proposal(time, client_id=time))
            except SlotConflict:
                pass

        with ThreadPoolExecutor(max_workers=len(times)) as executor:
            list(executor.map(attempt, times))

        booked = [appointment for appointment in store.all() if appointment.is_active]
        assert booked
        for i, first in enumerate(booked):
            for second in booked[i + 1:]:
                assert not overlaps(first.interval, second.interval)


def test_booked_slots_match_guard_decisions(availability, guard):
    """A slot shown as booked is rejected, a slot shown as available is accepted."""
    guard.validate_and_commit(proposal("10:00", duration=30))
    result = availability.get_day_slots(professional_id="ana", service_ids=["cut"], day=MONDAY)
    statuses = {slot.time: slot.status for slot in result.slots}

    assert statuses["10:15"] is SlotStatus.BOOKED
    with pytest.raises(SlotConflict):
        guard.validate_and_commit(proposal("10:15", client_id="c2"))

    assert statuses["10:30"] is SlotStatus.AVAILABLE
    guard.validate_and_commit(proposal("10:30", client_id="c3"))
