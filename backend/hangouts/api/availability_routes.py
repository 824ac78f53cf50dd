"""
Availability Routes - Stateless projection and common slot search

Both endpoints compute over the request body only; nothing is read from or
written to the store.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter
from pydantic import Field

from ..scheduling.availability import project_busy_intervals
from ..scheduling.common_slots import CommonSlotFinder
from ..scheduling.models import SchedulingConfigurationError
from ..utils.config import config
from ..utils.helpers import create_success_response
from .schemas import (
    CalendarItemPayload, CamelModel, DateRangePayload, ParticipantPayload,
    RequestConfigurationPayload, TimeRangePayload
)

logger = logging.getLogger(__name__)

availability_router = APIRouter(prefix="/api/availability", tags=["Availability"])


class ProjectionRequest(CamelModel):
    items: List[CalendarItemPayload] = Field(default_factory=list)
    date_ranges: List[DateRangePayload] = Field(default_factory=list)
    time_ranges: List[TimeRangePayload] = Field(default_factory=list)


class CommonSlotsRequest(CamelModel):
    configuration: RequestConfigurationPayload
    participants: List[ParticipantPayload] = Field(default_factory=list)
    step_minutes: Optional[int] = Field(None, description="Scan step; defaults to server setting")


@availability_router.post("/project")
async def project_availability(payload: ProjectionRequest):
    """Clip a calendar to the given date ranges and daily time ranges"""
    busy_intervals = project_busy_intervals(
        [item.to_domain() for item in payload.items],
        [dr.to_domain() for dr in payload.date_ranges],
        [tr.to_domain() for tr in payload.time_ranges]
    )
    return create_success_response(
        data=[busy.to_dict() for busy in busy_intervals],
        message=f"Projected {len(busy_intervals)} busy intervals"
    )


@availability_router.post("/common-slots")
async def common_slots(payload: CommonSlotsRequest):
    """Every candidate slot where enough participants are free"""
    step_minutes = payload.step_minutes if payload.step_minutes is not None else config.scheduling.step_minutes
    if step_minutes < config.scheduling.min_step_minutes:
        raise SchedulingConfigurationError(
            f"step must be at least {config.scheduling.min_step_minutes} minutes, got {step_minutes}"
        )

    configuration = payload.configuration.to_domain()
    participants = [participant.to_domain() for participant in payload.participants]
    slots = CommonSlotFinder(step_minutes).find_common_slots(configuration, participants)

    return create_success_response(
        data=[slot.to_dict() for slot in slots],
        message=f"Found {len(slots)} common slots"
    )
