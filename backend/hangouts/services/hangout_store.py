"""
Hangout Storage - Calendar Items and Hangout Requests

Defines the storage interface the scheduling layer depends on and an
in-memory implementation used by the API process and the tests. Calendar
items live under each user; hangout requests are top-level documents.
"""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from dataclasses import replace

from .calendar_items import CalendarItem
from ..scheduling.models import HangoutRequest

logger = logging.getLogger(__name__)


class HangoutStore(ABC):
    """Storage collaborator for calendar items and hangout requests"""

    async def initialize(self) -> bool:
        """Prepare the backing store; returns True when ready"""
        return True

    async def cleanup(self) -> None:
        """Release backing resources"""

    @abstractmethod
    async def fetch_calendar_items(self, user_id: str) -> List[CalendarItem]:
        ...

    @abstractmethod
    async def add_calendar_item(self, user_id: str, item: CalendarItem) -> str:
        """Store an item for a user and return its id (generated when empty)"""

    @abstractmethod
    async def update_calendar_item(self, user_id: str, item_id: str, item: CalendarItem) -> bool:
        """Replace a stored item in place; False when the user has no such item"""

    @abstractmethod
    async def delete_calendar_item(self, user_id: str, item_id: str) -> bool:
        ...

    @abstractmethod
    async def save_hangout_request(self, request: HangoutRequest) -> None:
        ...

    @abstractmethod
    async def fetch_hangout_request(self, request_id: str) -> Optional[HangoutRequest]:
        ...

    @abstractmethod
    async def fetch_hangout_requests_for_user(self, user_id: str) -> List[HangoutRequest]:
        """Requests created by ``user_id``"""

    @abstractmethod
    async def delete_hangout_request(self, request_id: str) -> bool:
        ...


class InMemoryHangoutStore(HangoutStore):
    """
    Process-local store backed by dictionaries

    Suitable for a single API worker and for tests; contents are lost on
    shutdown.
    """

    def __init__(self):
        self.calendar_items: Dict[str, Dict[str, CalendarItem]] = {}
        self.hangout_requests: Dict[str, HangoutRequest] = {}
        self._lock = asyncio.Lock()

    async def initialize(self) -> bool:
        logger.info("In-memory hangout store initialized")
        return True

    async def cleanup(self) -> None:
        async with self._lock:
            self.calendar_items.clear()
            self.hangout_requests.clear()
        logger.info("In-memory hangout store cleared")

    async def fetch_calendar_items(self, user_id: str) -> List[CalendarItem]:
        async with self._lock:
            return list(self.calendar_items.get(user_id, {}).values())

    async def add_calendar_item(self, user_id: str, item: CalendarItem) -> str:
        if not item.id:
            item = replace(item, id=uuid.uuid4().hex)
        async with self._lock:
            self.calendar_items.setdefault(user_id, {})[item.id] = item
        logger.debug(f"Stored calendar item {item.id} for user {user_id}")
        return item.id

    async def update_calendar_item(self, user_id: str, item_id: str, item: CalendarItem) -> bool:
        async with self._lock:
            items = self.calendar_items.get(user_id, {})
            if item_id not in items:
                return False
            items[item_id] = replace(item, id=item_id)
        logger.debug(f"Updated calendar item {item_id} for user {user_id}")
        return True

    async def delete_calendar_item(self, user_id: str, item_id: str) -> bool:
        async with self._lock:
            return self.calendar_items.get(user_id, {}).pop(item_id, None) is not None

    async def save_hangout_request(self, request: HangoutRequest) -> None:
        async with self._lock:
            self.hangout_requests[request.request_id] = request

    async def fetch_hangout_request(self, request_id: str) -> Optional[HangoutRequest]:
        async with self._lock:
            return self.hangout_requests.get(request_id)

    async def fetch_hangout_requests_for_user(self, user_id: str) -> List[HangoutRequest]:
        async with self._lock:
            return [
                request for request in self.hangout_requests.values()
                if request.creator_uid == user_id
            ]

    async def delete_hangout_request(self, request_id: str) -> bool:
        async with self._lock:
            return self.hangout_requests.pop(request_id, None) is not None


__all__ = ['HangoutStore', 'InMemoryHangoutStore']
