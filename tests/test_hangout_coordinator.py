"""Tests for the hangout request lifecycle."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from _test_helpers import MONDAY, at, single_day_configuration
from hangouts.scheduling.hangout_coordinator import (
    HANGOUT_EVENT_COLOR,
    HangoutCoordinator,
    HangoutNotFoundError,
    HangoutPermissionError,
    HangoutStateError,
)
from hangouts.scheduling.models import CommonSlot, HangoutRequest, HangoutStatus
from hangouts.services.calendar_items import PlainOccurrence
from hangouts.services.hangout_store import InMemoryHangoutStore

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]


@pytest.fixture
def coordinator(store) -> HangoutCoordinator:
    return HangoutCoordinator(store, step_minutes=15)


@pytest.fixture
def coffee_configuration():
    """Monday 09:00-12:00, one hour, two people."""
    return single_day_configuration(start="09:00", end="12:00", duration=60)


async def seed_busy(store, user_id: str, start: datetime, end: datetime, title: str = "Busy") -> None:
    await store.add_calendar_item(user_id, PlainOccurrence(id="", title=title, start=start, end=end))


class YieldingStore(InMemoryHangoutStore):
    """Hands control back to the event loop before every calendar read"""

    async def fetch_calendar_items(self, user_id):
        await asyncio.sleep(0)
        return await super().fetch_calendar_items(user_id)


class FlakyBookingStore(InMemoryHangoutStore):
    """Fails the first hangout booking for one user"""

    def __init__(self, failing_user: str):
        super().__init__()
        self.failing_user = failing_user
        self.failed = False

    async def add_calendar_item(self, user_id, item):
        if user_id == self.failing_user and item.hangout_request_id and not self.failed:
            self.failed = True
            raise ConnectionError(f"calendar write for {user_id} failed")
        return await super().add_calendar_item(user_id, item)


def hangout_events(items, request_id: str) -> list:
    return [item for item in items if getattr(item, "hangout_request_id", None) == request_id]


async def ready_request(store, coordinator, configuration) -> HangoutRequest:
    """Alice busy 09-10, Bob busy 11-12: the only common hour is 10-11."""
    await seed_busy(store, "alice", at(MONDAY, 9), at(MONDAY, 10))
    await seed_busy(store, "bob", at(MONDAY, 11), at(MONDAY, 12))
    request = await coordinator.create_request("alice", "Alice", "Coffee", configuration)
    await coordinator.submit_availability(request.request_id, "bob", "Bob")
    return await coordinator.calculate_common_slots(request.request_id)


class TestCreateAndSubmit:
    async def test_creator_is_first_participant(self, store, coordinator, coffee_configuration):
        await seed_busy(store, "alice", at(MONDAY, 9), at(MONDAY, 10))

        request = await coordinator.create_request("alice", "Alice", "Coffee", coffee_configuration)

        assert request.status is HangoutStatus.PENDING
        assert list(request.participants) == ["alice"]
        creator = request.participants["alice"]
        assert [(b.start, b.end) for b in creator.busy_intervals] == [(at(MONDAY, 9), at(MONDAY, 10))]
        assert await store.fetch_hangout_request(request.request_id) == request

    async def test_reaching_headcount_awaits_calculation(self, coordinator, coffee_configuration):
        request = await coordinator.create_request("alice", "Alice", "Coffee", coffee_configuration)

        updated = await coordinator.submit_availability(request.request_id, "bob", "Bob")

        assert updated.status is HangoutStatus.PENDING_CALCULATION
        assert updated.participant_count == 2
        assert updated.participants["bob"].display_name == "Bob"

    async def test_resubmission_replaces_entry(self, store, coordinator, coffee_configuration):
        request = await coordinator.create_request("alice", "Alice", "Coffee", coffee_configuration)
        await coordinator.submit_availability(request.request_id, "bob", "Bob")
        await seed_busy(store, "bob", at(MONDAY, 10), at(MONDAY, 11))

        updated = await coordinator.submit_availability(request.request_id, "bob", "Bobby")

        assert updated.participant_count == 2
        assert updated.participants["bob"].display_name == "Bobby"
        assert len(updated.participants["bob"].busy_intervals) == 1

    async def test_unknown_request_raises(self, coordinator):
        with pytest.raises(HangoutNotFoundError):
            await coordinator.submit_availability("missing", "bob", "Bob")


class TestCalculation:
    async def test_results_ready_with_single_common_hour(self, store, coordinator, coffee_configuration):
        request = await ready_request(store, coordinator, coffee_configuration)

        assert request.status is HangoutStatus.RESULTS_READY
        assert [(s.start, s.end) for s in request.common_slots] == [(at(MONDAY, 10), at(MONDAY, 11))]
        assert request.common_slots[0].available_participants == ("alice", "bob")

    async def test_waiting_for_participants_leaves_request_unchanged(self, coordinator, coffee_configuration):
        request = await coordinator.create_request("alice", "Alice", "Coffee", coffee_configuration)

        result = await coordinator.calculate_common_slots(request.request_id)

        assert result.status is HangoutStatus.PENDING
        assert result.common_slots == ()

    async def test_no_common_time(self, store, coordinator, coffee_configuration):
        await seed_busy(store, "bob", at(MONDAY, 8), at(MONDAY, 13))
        request = await coordinator.create_request("alice", "Alice", "Coffee", coffee_configuration)
        await coordinator.submit_availability(request.request_id, "bob", "Bob")

        result = await coordinator.calculate_common_slots(request.request_id)

        assert result.status is HangoutStatus.NO_SLOTS_FOUND
        assert result.common_slots == ()


class TestConfirmation:
    async def test_confirm_books_event_for_available_participants(self, store, coordinator, coffee_configuration):
        request = await ready_request(store, coordinator, coffee_configuration)
        slot = request.common_slots[0]

        confirmed = await coordinator.confirm_slot(request.request_id, "alice", slot)

        assert confirmed.status is HangoutStatus.CONFIRMED
        assert confirmed.final_slot == slot
        for user_id in ("alice", "bob"):
            booked = [
                item for item in await store.fetch_calendar_items(user_id)
                if getattr(item, "hangout_request_id", None) == request.request_id
            ]
            assert len(booked) == 1
            assert booked[0].title == "Hangout: Coffee"
            assert booked[0].color == HANGOUT_EVENT_COLOR
            assert (booked[0].start, booked[0].end) == (slot.start, slot.end)

    async def test_confirming_same_slot_twice_is_a_no_op(self, store, coordinator, coffee_configuration):
        request = await ready_request(store, coordinator, coffee_configuration)
        slot = request.common_slots[0]
        await coordinator.confirm_slot(request.request_id, "alice", slot)

        again = await coordinator.confirm_slot(
            request.request_id, "alice", CommonSlot(start=slot.start, end=slot.end)
        )

        assert again.status is HangoutStatus.CONFIRMED
        assert len(await store.fetch_calendar_items("bob")) == 2

    async def test_different_slot_after_confirmation_is_rejected(self, store, coordinator, coffee_configuration):
        request = await ready_request(store, coordinator, coffee_configuration)
        slot = request.common_slots[0]
        await coordinator.confirm_slot(request.request_id, "alice", slot)

        with pytest.raises(HangoutStateError):
            await coordinator.confirm_slot(
                request.request_id,
                "alice",
                CommonSlot(start=slot.start + timedelta(minutes=15), end=slot.end + timedelta(minutes=15)),
            )

    async def test_only_creator_can_confirm(self, store, coordinator, coffee_configuration):
        request = await ready_request(store, coordinator, coffee_configuration)

        with pytest.raises(HangoutPermissionError):
            await coordinator.confirm_slot(request.request_id, "bob", request.common_slots[0])

    async def test_slot_must_be_a_candidate(self, store, coordinator, coffee_configuration):
        request = await ready_request(store, coordinator, coffee_configuration)

        with pytest.raises(HangoutStateError):
            await coordinator.confirm_slot(
                request.request_id, "alice", CommonSlot(start=at(MONDAY, 9), end=at(MONDAY, 10))
            )

    async def test_submission_after_confirmation_is_rejected(self, store, coordinator, coffee_configuration):
        request = await ready_request(store, coordinator, coffee_configuration)
        await coordinator.confirm_slot(request.request_id, "alice", request.common_slots[0])

        with pytest.raises(HangoutStateError):
            await coordinator.submit_availability(request.request_id, "carol", "Carol")


class TestCloseListDelete:
    async def test_close_is_creator_only_and_final(self, store, coordinator, coffee_configuration):
        request = await ready_request(store, coordinator, coffee_configuration)

        with pytest.raises(HangoutPermissionError):
            await coordinator.close_request(request.request_id, "bob")

        closed = await coordinator.close_request(request.request_id, "alice")

        assert closed.status is HangoutStatus.CLOSED
        with pytest.raises(HangoutStateError):
            await coordinator.submit_availability(request.request_id, "carol", "Carol")
        with pytest.raises(HangoutStateError):
            await coordinator.confirm_slot(request.request_id, "alice", request.common_slots[0])

    async def test_list_newest_first(self, store, coordinator, coffee_configuration):
        for index, name in enumerate(["First", "Second", "Third"]):
            await store.save_hangout_request(HangoutRequest(
                request_id=name.lower(),
                creator_uid="alice",
                creator_name="Alice",
                request_name=name,
                configuration=coffee_configuration,
                created_at=datetime(2026, 10, 1) + timedelta(days=index),
            ))
        await store.save_hangout_request(HangoutRequest(
            request_id="other",
            creator_uid="bob",
            creator_name="Bob",
            request_name="Other",
            configuration=coffee_configuration,
        ))

        requests = await coordinator.list_requests_for_user("alice")

        assert [r.request_id for r in requests] == ["third", "second", "first"]

    async def test_delete_is_creator_only(self, coordinator, coffee_configuration):
        request = await coordinator.create_request("alice", "Alice", "Coffee", coffee_configuration)

        with pytest.raises(HangoutPermissionError):
            await coordinator.delete_request(request.request_id, "bob")

        await coordinator.delete_request(request.request_id, "alice")

        with pytest.raises(HangoutNotFoundError):
            await coordinator.get_request(request.request_id)


class TestConcurrentUpdates:
    async def test_simultaneous_submissions_keep_both_participants(self):
        store = YieldingStore()
        coordinator = HangoutCoordinator(store, step_minutes=15)
        configuration = single_day_configuration(start="09:00", end="12:00", duration=60, members=3)
        request = await coordinator.create_request("alice", "Alice", "Coffee", configuration)

        await asyncio.gather(
            coordinator.submit_availability(request.request_id, "bob", "Bob"),
            coordinator.submit_availability(request.request_id, "carol", "Carol"),
        )

        stored = await store.fetch_hangout_request(request.request_id)
        assert set(stored.participants) == {"alice", "bob", "carol"}
        assert stored.status is HangoutStatus.PENDING_CALCULATION

    async def test_calculation_during_submission_keeps_both_updates(self):
        store = YieldingStore()
        coordinator = HangoutCoordinator(store, step_minutes=15)
        configuration = single_day_configuration(start="09:00", end="12:00", duration=60)
        request = await coordinator.create_request("alice", "Alice", "Coffee", configuration)
        await coordinator.submit_availability(request.request_id, "bob", "Bob")

        await asyncio.gather(
            coordinator.submit_availability(request.request_id, "carol", "Carol"),
            coordinator.calculate_common_slots(request.request_id),
        )

        stored = await store.fetch_hangout_request(request.request_id)
        assert set(stored.participants) == {"alice", "bob", "carol"}
        assert stored.status is HangoutStatus.RESULTS_READY
        assert stored.common_slots[0].available_participants == ("alice", "bob", "carol")


class TestConfirmationRetry:
    async def test_retry_books_events_missed_by_failed_confirmation(self, coffee_configuration):
        store = FlakyBookingStore(failing_user="bob")
        coordinator = HangoutCoordinator(store, step_minutes=15)
        request = await ready_request(store, coordinator, coffee_configuration)
        slot = request.common_slots[0]

        with pytest.raises(ConnectionError):
            await coordinator.confirm_slot(request.request_id, "alice", slot)
        assert hangout_events(await store.fetch_calendar_items("bob"), request.request_id) == []

        confirmed = await coordinator.confirm_slot(request.request_id, "alice", slot)

        assert confirmed.status is HangoutStatus.CONFIRMED
        for user_id in ("alice", "bob"):
            booked = hangout_events(await store.fetch_calendar_items(user_id), request.request_id)
            assert len(booked) == 1
            assert (booked[0].start, booked[0].end) == (slot.start, slot.end)

    async def test_repeated_confirmation_never_double_books(self, store, coordinator, coffee_configuration):
        request = await ready_request(store, coordinator, coffee_configuration)
        slot = request.common_slots[0]

        for _ in range(3):
            await coordinator.confirm_slot(request.request_id, "alice", slot)

        for user_id in ("alice", "bob"):
            assert len(hangout_events(await store.fetch_calendar_items(user_id), request.request_id)) == 1
