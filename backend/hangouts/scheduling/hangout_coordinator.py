"""
Hangout Coordinator - Request Lifecycle Orchestration

Coordinates a hangout request from creation to confirmation:
- registers the creator and later participants with their projected availability
- runs the common slot search and records the outcome status
- confirms the creator's chosen slot and books it into every available
  participant's calendar through the storage collaborator
"""

import asyncio
import logging
import uuid
from typing import Dict, List, Optional
from dataclasses import replace

from ..services.calendar_items import PlainOccurrence
from ..services.hangout_store import HangoutStore
from ..utils.helpers import format_duration
from .common_slots import CommonSlotFinder
from .models import (
    CommonSlot, HangoutRequest, HangoutStatus, ParticipantAvailability, RequestConfiguration
)

logger = logging.getLogger(__name__)

HANGOUT_EVENT_COLOR = "#38A169"


class HangoutError(Exception):
    """Base class for hangout lifecycle failures"""


class HangoutNotFoundError(HangoutError):
    """No hangout request with the given id"""


class HangoutPermissionError(HangoutError):
    """The caller may not perform this action on the request"""


class HangoutStateError(HangoutError):
    """The action conflicts with the request's current status"""


class HangoutCoordinator:
    """
    Hangout Request Orchestrator

    Owns no request state of its own: every operation loads the request from
    the store, derives a new immutable version and saves it back. Updates to
    one request are serialized by a per-request lock held across that
    load-modify-save sequence.
    """

    def __init__(self, store: HangoutStore, step_minutes: Optional[int] = None):
        self.store = store
        self.finder = CommonSlotFinder(step_minutes)
        self._request_locks: Dict[str, asyncio.Lock] = {}

    def _request_lock(self, request_id: str) -> asyncio.Lock:
        lock = self._request_locks.get(request_id)
        if lock is None:
            lock = asyncio.Lock()
            self._request_locks[request_id] = lock
        return lock

    async def get_request(self, request_id: str) -> HangoutRequest:
        request = await self.store.fetch_hangout_request(request_id)
        if request is None:
            raise HangoutNotFoundError(f"Hangout request {request_id} not found")
        return request

    async def list_requests_for_user(self, user_id: str) -> List[HangoutRequest]:
        """Requests created by a user, newest first"""
        requests = await self.store.fetch_hangout_requests_for_user(user_id)
        return sorted(requests, key=lambda request: request.created_at, reverse=True)

    async def project_participant(
        self,
        configuration: RequestConfiguration,
        participant_id: str,
        display_name: str
    ) -> ParticipantAvailability:
        """Load a participant's calendar and clip it to the request's search space"""
        items = await self.store.fetch_calendar_items(participant_id)
        return ParticipantAvailability.from_calendar_items(
            participant_id, display_name, items, configuration
        )

    async def create_request(
        self,
        creator_uid: str,
        creator_name: str,
        request_name: str,
        configuration: RequestConfiguration
    ) -> HangoutRequest:
        """
        Create a hangout request with the creator as its first participant

        Returns:
            The stored request in ``pending`` status
        """
        creator = await self.project_participant(configuration, creator_uid, creator_name)
        request = HangoutRequest(
            request_id=uuid.uuid4().hex,
            creator_uid=creator_uid,
            creator_name=creator_name,
            request_name=request_name,
            configuration=configuration,
            participants={creator_uid: creator}
        )
        await self.store.save_hangout_request(request)

        logger.info(
            f"Created hangout request {request.request_id} '{request_name}' by {creator_uid} "
            f"for {format_duration(configuration.desired_duration_minutes)} "
            f"over {configuration.span_days} days, {len(creator.busy_intervals)} busy intervals"
        )
        return request

    async def submit_availability(
        self,
        request_id: str,
        participant_id: str,
        display_name: str
    ) -> HangoutRequest:
        """
        Add or replace a participant's availability on a request

        A pending request moves to ``pending_calculation`` once the desired
        headcount has submitted.
        """
        async with self._request_lock(request_id):
            request = await self.get_request(request_id)
            if request.status.is_final:
                raise HangoutStateError(
                    f"Hangout request {request_id} is {request.status.value}, availability is closed"
                )

            participant = await self.project_participant(
                request.configuration, participant_id, display_name
            )
            participants = {**request.participants, participant_id: participant}

            status = request.status
            if (status == HangoutStatus.PENDING and
                    len(participants) >= request.configuration.desired_member_count):
                status = HangoutStatus.PENDING_CALCULATION

            updated = replace(request, participants=participants, status=status)
            await self.store.save_hangout_request(updated)

        logger.info(
            f"Participant {participant_id} submitted availability for {request_id} "
            f"({len(participants)}/{request.configuration.desired_member_count})"
        )
        return updated

    async def calculate_common_slots(self, request_id: str) -> HangoutRequest:
        """
        Run the common slot search for a request and record its outcome

        Too few participants leaves the request untouched; otherwise the
        status becomes ``results_ready`` or ``no_slots_found``.
        """
        async with self._request_lock(request_id):
            request = await self.get_request(request_id)
            if request.status.is_final:
                raise HangoutStateError(f"Hangout request {request_id} is already {request.status.value}")

            if request.participant_count < request.configuration.desired_member_count:
                logger.info(f"Hangout request {request_id} is still waiting for participants")
                return request

            slots = self.finder.find_common_slots(
                request.configuration, list(request.participants.values())
            )
            status = HangoutStatus.RESULTS_READY if slots else HangoutStatus.NO_SLOTS_FOUND
            updated = replace(request, common_slots=tuple(slots), status=status)
            await self.store.save_hangout_request(updated)

        logger.info(f"Hangout request {request_id}: {len(slots)} common slots, status {status.value}")
        return updated

    async def confirm_slot(
        self,
        request_id: str,
        caller_uid: str,
        chosen_slot: CommonSlot
    ) -> HangoutRequest:
        """
        Confirm the creator's chosen slot and book it for available participants

        Confirming the same slot again books any hangout event still missing
        from a participant's calendar and changes nothing else; a different
        slot after confirmation is rejected.

        Raises:
            HangoutPermissionError: caller is not the creator
            HangoutStateError: request closed, already confirmed differently,
                or the slot is not one of the computed candidates
        """
        async with self._request_lock(request_id):
            request = await self.get_request(request_id)
            if request.creator_uid != caller_uid:
                raise HangoutPermissionError("Only the creator can confirm the hangout")

            if request.status == HangoutStatus.CONFIRMED:
                if request.final_slot is not None and request.final_slot.same_interval(chosen_slot):
                    booked = await self._book_hangout_events(request, request.final_slot)
                    logger.info(
                        f"Hangout request {request_id} already confirmed with this slot; "
                        f"{booked} missing events booked"
                    )
                    return request
                raise HangoutStateError(
                    f"Hangout request {request_id} has already been confirmed with a different slot"
                )
            if request.status == HangoutStatus.CLOSED:
                raise HangoutStateError(f"Hangout request {request_id} is closed")

            candidate = next(
                (slot for slot in request.common_slots if slot.same_interval(chosen_slot)), None
            )
            if candidate is None:
                raise HangoutStateError(
                    f"Slot {chosen_slot.start.isoformat()} - {chosen_slot.end.isoformat()} "
                    f"is not a candidate of hangout request {request_id}"
                )

            updated = replace(request, final_slot=candidate, status=HangoutStatus.CONFIRMED)
            await self.store.save_hangout_request(updated)
            booked = await self._book_hangout_events(updated, candidate)

        logger.info(
            f"Hangout {request_id} confirmed by {caller_uid} for "
            f"{candidate.start.isoformat()}; events created for {booked} participants"
        )
        return updated

    async def _book_hangout_events(self, request: HangoutRequest, slot: CommonSlot) -> int:
        """Add the hangout event to each available participant's calendar that lacks it"""
        booked = 0
        for participant_id in slot.available_participants:
            items = await self.store.fetch_calendar_items(participant_id)
            if any(getattr(item, "hangout_request_id", None) == request.request_id for item in items):
                continue
            await self.store.add_calendar_item(participant_id, PlainOccurrence(
                id="",
                title=f"Hangout: {request.request_name}",
                start=slot.start,
                end=slot.end,
                color=HANGOUT_EVENT_COLOR,
                hangout_request_id=request.request_id
            ))
            booked += 1
        return booked

    async def close_request(self, request_id: str, caller_uid: str) -> HangoutRequest:
        """Close a request so it no longer accepts availability"""
        async with self._request_lock(request_id):
            request = await self.get_request(request_id)
            if request.creator_uid != caller_uid:
                raise HangoutPermissionError("Only the creator can close the hangout")
            if request.status == HangoutStatus.CLOSED:
                return request

            updated = replace(request, status=HangoutStatus.CLOSED)
            await self.store.save_hangout_request(updated)
        logger.info(f"Hangout request {request_id} closed by {caller_uid}")
        return updated

    async def delete_request(self, request_id: str, caller_uid: str) -> None:
        async with self._request_lock(request_id):
            request = await self.get_request(request_id)
            if request.creator_uid != caller_uid:
                raise HangoutPermissionError("Only the creator can delete the hangout")
            await self.store.delete_hangout_request(request_id)
        self._request_locks.pop(request_id, None)
        logger.info(f"Hangout request {request_id} deleted by {caller_uid}")


__all__ = [
    'HangoutCoordinator',
    'HangoutError',
    'HangoutNotFoundError',
    'HangoutPermissionError',
    'HangoutStateError',
    'HANGOUT_EVENT_COLOR',
]
