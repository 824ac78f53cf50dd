"""Shared fixtures for the scheduling test suite."""

from __future__ import annotations

from datetime import date

import pytest

from _test_helpers import MONDAY, at
from hangouts.services.calendar_items import DayKey, PlainOccurrence, RecurringTemplate
from hangouts.services.hangout_store import InMemoryHangoutStore


@pytest.fixture
def weekly_standup() -> RecurringTemplate:
    """Mon/Wed 09:00-10:00 stamp repeating for three weeks."""
    return RecurringTemplate(
        id="standup",
        title="Standup",
        start=at(MONDAY, 9),
        end=at(MONDAY, 10),
        repeat_days=(DayKey.MON, DayKey.WED),
        repeat_end_date=date(2026, 11, 9),
        color="#ff8800",
        emoji="☕",
    )


@pytest.fixture
def dentist() -> PlainOccurrence:
    return PlainOccurrence(
        id="dentist",
        title="Dentist",
        start=at(MONDAY, 14),
        end=at(MONDAY, 15),
    )


@pytest.fixture
def store() -> InMemoryHangoutStore:
    return InMemoryHangoutStore()
