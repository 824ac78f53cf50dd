"""
Hangout Routes - Hangout request lifecycle

Create a request, collect participant availability, compute common slots
and close or delete the request. Callers identify themselves in the payload.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import Field

from ..scheduling.hangout_coordinator import HangoutCoordinator
from ..utils.helpers import create_success_response
from .schemas import CamelModel, RequestConfigurationPayload

logger = logging.getLogger(__name__)

hangout_router = APIRouter(prefix="/api/hangouts", tags=["Hangouts"])


def get_coordinator(request: Request) -> HangoutCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(status_code=503, detail="Hangout coordinator not initialized")
    return coordinator


class CreateHangoutRequest(CamelModel):
    creator_uid: str = Field(..., min_length=1)
    creator_name: str = ""
    request_name: str = Field(..., min_length=1)
    configuration: RequestConfigurationPayload


class SubmitAvailabilityRequest(CamelModel):
    participant_id: str = Field(..., min_length=1)
    display_name: str = ""


class CallerRequest(CamelModel):
    caller_uid: str = Field(..., min_length=1)


@hangout_router.post("", status_code=201)
async def create_hangout(
    payload: CreateHangoutRequest,
    coordinator: HangoutCoordinator = Depends(get_coordinator)
):
    request = await coordinator.create_request(
        payload.creator_uid,
        payload.creator_name,
        payload.request_name,
        payload.configuration.to_domain()
    )
    return create_success_response(data=request.to_dict(), message="Hangout request created")


@hangout_router.get("")
async def list_hangouts(
    user_id: str = Query(..., description="Creator whose requests to list"),
    coordinator: HangoutCoordinator = Depends(get_coordinator)
):
    requests = await coordinator.list_requests_for_user(user_id)
    return create_success_response(data=[request.to_dict() for request in requests])


@hangout_router.get("/{request_id}")
async def get_hangout(request_id: str, coordinator: HangoutCoordinator = Depends(get_coordinator)):
    request = await coordinator.get_request(request_id)
    return create_success_response(data=request.to_dict())


@hangout_router.post("/{request_id}/participants")
async def submit_availability(
    request_id: str,
    payload: SubmitAvailabilityRequest,
    coordinator: HangoutCoordinator = Depends(get_coordinator)
):
    """Project the participant's stored calendar onto the request and record it"""
    request = await coordinator.submit_availability(
        request_id, payload.participant_id, payload.display_name
    )
    return create_success_response(data=request.to_dict(), message="Availability submitted")


@hangout_router.post("/{request_id}/calculate")
async def calculate_common_slots(
    request_id: str,
    coordinator: HangoutCoordinator = Depends(get_coordinator)
):
    request = await coordinator.calculate_common_slots(request_id)
    return create_success_response(
        data=request.to_dict(),
        message=f"{len(request.common_slots)} common slots, status {request.status.value}"
    )


@hangout_router.post("/{request_id}/close")
async def close_hangout(
    request_id: str,
    payload: CallerRequest,
    coordinator: HangoutCoordinator = Depends(get_coordinator)
):
    request = await coordinator.close_request(request_id, payload.caller_uid)
    return create_success_response(data=request.to_dict(), message="Hangout request closed")


@hangout_router.delete("/{request_id}")
async def delete_hangout(
    request_id: str,
    caller_uid: str = Query(..., min_length=1),
    coordinator: HangoutCoordinator = Depends(get_coordinator)
):
    await coordinator.delete_request(request_id, caller_uid)
    return create_success_response(message="Hangout request deleted")
