"""
Calendar Routes - Calendar items and recurring stamp expansion
"""

import logging
from datetime import datetime
from typing import List, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import Field

from ..services.calendar_items import calendar_item_to_dict, expand_recurring_items
from ..services.hangout_store import HangoutStore
from ..utils.helpers import create_success_response, parse_iso_datetime
from .schemas import CalendarItemPayload, CamelModel

logger = logging.getLogger(__name__)

calendar_router = APIRouter(prefix="/api/calendar", tags=["Calendar API"])


def get_store(request: Request) -> HangoutStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Hangout store not initialized")
    return store


def _parse_window(window_start: datetime, window_end: datetime) -> Tuple[datetime, datetime]:
    start, end = parse_iso_datetime(window_start), parse_iso_datetime(window_end)
    if end < start:
        raise HTTPException(status_code=400, detail="Window end must not precede window start")
    return start, end


class ExpandRequest(CamelModel):
    items: List[CalendarItemPayload] = Field(default_factory=list)
    window_start: datetime
    window_end: datetime


@calendar_router.post("/expand")
async def expand_items(payload: ExpandRequest):
    """Expand the given items into the occurrences visible in a window of days"""
    window_start, window_end = _parse_window(payload.window_start, payload.window_end)
    occurrences = expand_recurring_items(
        [item.to_domain() for item in payload.items], window_start, window_end
    )
    return create_success_response(
        data=[calendar_item_to_dict(occurrence) for occurrence in occurrences],
        message=f"Expanded {len(occurrences)} occurrences"
    )


@calendar_router.get("/{user_id}/items")
async def list_items(user_id: str, store: HangoutStore = Depends(get_store)):
    """Stored calendar items of a user, recurring stamps unexpanded"""
    items = await store.fetch_calendar_items(user_id)
    return create_success_response(data=[calendar_item_to_dict(item) for item in items])


@calendar_router.post("/{user_id}/items", status_code=201)
async def add_item(
    user_id: str,
    payload: CalendarItemPayload,
    store: HangoutStore = Depends(get_store)
):
    """Store a calendar event or stamp for a user"""
    item_id = await store.add_calendar_item(user_id, payload.to_domain())
    return create_success_response(data={"id": item_id}, message="Calendar item stored")


@calendar_router.put("/{user_id}/items/{item_id}")
async def update_item(
    user_id: str,
    item_id: str,
    payload: CalendarItemPayload,
    store: HangoutStore = Depends(get_store)
):
    """Replace a stored calendar item; the path id wins over any id in the body"""
    if not await store.update_calendar_item(user_id, item_id, payload.to_domain()):
        raise HTTPException(status_code=404, detail=f"Calendar item {item_id} not found")
    return create_success_response(data={"id": item_id}, message="Calendar item updated")


@calendar_router.delete("/{user_id}/items/{item_id}")
async def delete_item(user_id: str, item_id: str, store: HangoutStore = Depends(get_store)):
    if not await store.delete_calendar_item(user_id, item_id):
        raise HTTPException(status_code=404, detail=f"Calendar item {item_id} not found")
    return create_success_response(message="Calendar item deleted")


@calendar_router.get("/{user_id}/occurrences")
async def list_occurrences(
    user_id: str,
    start: datetime = Query(..., description="First day of the window"),
    end: datetime = Query(..., description="Last day of the window"),
    store: HangoutStore = Depends(get_store)
):
    """A user's calendar as concrete occurrences, stamps expanded"""
    window_start, window_end = _parse_window(start, end)
    items = await store.fetch_calendar_items(user_id)
    occurrences = expand_recurring_items(items, window_start, window_end)
    return create_success_response(
        data=[calendar_item_to_dict(occurrence) for occurrence in occurrences]
    )
