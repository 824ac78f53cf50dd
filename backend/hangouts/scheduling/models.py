"""
Scheduling Data Structures

Immutable value types shared by the availability projector and the common
slot finder: the search space of a hangout request, participant busy
intervals and the candidate slots produced by the search.
"""

import logging
from typing import Dict, Optional, Any, Iterable, Iterator, Sequence, Tuple
from datetime import datetime, date, time, timedelta
from dataclasses import dataclass, field
from enum import Enum

from ..utils.helpers import (
    as_date, at_time_of_day, format_time_of_day, intervals_overlap,
    iter_days, parse_iso_datetime, parse_time_of_day
)

logger = logging.getLogger(__name__)


class SchedulingConfigurationError(ValueError):
    """The request's search space or parameters are undefined or invalid"""


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days"""
    start: date
    end: date

    def days(self) -> Iterator[date]:
        return iter_days(self.start, self.end)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DateRange':
        return cls(
            start=as_date(parse_iso_datetime(data['start'])),
            end=as_date(parse_iso_datetime(data['end']))
        )

    def to_dict(self) -> Dict[str, str]:
        return {'start': self.start.isoformat(), 'end': self.end.isoformat()}


@dataclass(frozen=True)
class TimeRange:
    """Daily window; an inverted window is kept but never scanned"""
    start: time
    end: time

    @classmethod
    def parse(cls, start: str, end: str) -> 'TimeRange':
        try:
            return cls(start=parse_time_of_day(start), end=parse_time_of_day(end))
        except ValueError as e:
            raise SchedulingConfigurationError(str(e)) from e

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> 'TimeRange':
        return cls.parse(data['start'], data['end'])

    @property
    def is_valid(self) -> bool:
        return self.end > self.start

    def bounds_on(self, day: date) -> Tuple[datetime, datetime]:
        """Concrete [start, end) instants of this window on a calendar day"""
        return at_time_of_day(day, self.start), at_time_of_day(day, self.end)

    def to_dict(self) -> Dict[str, str]:
        return {'start': format_time_of_day(self.start), 'end': format_time_of_day(self.end)}

    def __str__(self) -> str:
        return f"{format_time_of_day(self.start)}-{format_time_of_day(self.end)}"


def iter_search_cells(
    date_ranges: Sequence[DateRange],
    time_ranges: Sequence[TimeRange]
) -> Iterator[Tuple[date, TimeRange, datetime, datetime]]:
    """
    Yield (day, time range, cell start, cell end) for every search cell

    Date ranges with end before start contribute nothing; inverted time
    ranges are skipped with a warning.
    """
    valid_time_ranges = []
    for time_range in time_ranges:
        if time_range.is_valid:
            valid_time_ranges.append(time_range)
        else:
            logger.warning(f"Skipping invalid time range {time_range}")

    for date_range in date_ranges:
        if date_range.end < date_range.start:
            logger.warning(f"Skipping inverted date range {date_range.start} - {date_range.end}")
            continue
        for day in date_range.days():
            for time_range in valid_time_ranges:
                cell_start, cell_end = time_range.bounds_on(day)
                yield day, time_range, cell_start, cell_end


@dataclass(frozen=True)
class RequestConfiguration:
    """Search space and constraints of one scheduling request"""
    date_ranges: Tuple[DateRange, ...]
    time_ranges: Tuple[TimeRange, ...]
    desired_duration_minutes: int
    desired_margin_minutes: int = 0
    desired_member_count: int = 2

    def __post_init__(self):
        # Accept lists from callers, store tuples
        object.__setattr__(self, 'date_ranges', tuple(self.date_ranges))
        object.__setattr__(self, 'time_ranges', tuple(self.time_ranges))

        errors = []
        if not self.date_ranges:
            errors.append("at least one date range is required")
        if not self.time_ranges:
            errors.append("at least one time range is required")
        if self.desired_duration_minutes <= 0:
            errors.append("desired duration must be positive")
        if self.desired_margin_minutes < 0:
            errors.append("desired margin cannot be negative")
        if self.desired_member_count < 2:
            errors.append("desired member count must be at least 2")
        if errors:
            raise SchedulingConfigurationError("; ".join(errors))

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.desired_duration_minutes)

    @property
    def margin(self) -> timedelta:
        return timedelta(minutes=self.desired_margin_minutes)

    @property
    def first_day(self) -> date:
        return min(dr.start for dr in self.date_ranges)

    @property
    def last_day(self) -> date:
        return max(dr.end for dr in self.date_ranges)

    @property
    def span_days(self) -> int:
        return (self.last_day - self.first_day).days + 1

    def cells(self) -> Iterator[Tuple[date, TimeRange, datetime, datetime]]:
        """Every (day, time range) cell of the search space"""
        return iter_search_cells(self.date_ranges, self.time_ranges)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RequestConfiguration':
        return cls(
            date_ranges=tuple(DateRange.from_dict(dr) for dr in data.get('dateRanges', [])),
            time_ranges=tuple(TimeRange.from_dict(tr) for tr in data.get('timeRanges', [])),
            desired_duration_minutes=int(data['desiredDurationMinutes']),
            desired_margin_minutes=int(data.get('desiredMarginMinutes', 0)),
            desired_member_count=int(data.get('desiredMemberCount', 2))
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'dateRanges': [dr.to_dict() for dr in self.date_ranges],
            'timeRanges': [tr.to_dict() for tr in self.time_ranges],
            'desiredDurationMinutes': self.desired_duration_minutes,
            'desiredMarginMinutes': self.desired_margin_minutes,
            'desiredMemberCount': self.desired_member_count,
        }


@dataclass(frozen=True)
class BusyInterval:
    """A titled span during which a participant cannot meet"""
    title: str
    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return intervals_overlap(self.start, self.end, start, end)

    def to_dict(self) -> Dict[str, str]:
        return {'title': self.title, 'start': self.start.isoformat(), 'end': self.end.isoformat()}


@dataclass(frozen=True)
class ParticipantAvailability:
    """One participant's busy intervals, clipped to a request's search space"""
    participant_id: str
    display_name: str
    busy_intervals: Tuple[BusyInterval, ...] = ()
    submitted_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, 'busy_intervals', tuple(self.busy_intervals))

    def is_free(self, start: datetime, end: datetime) -> bool:
        """True when no busy interval overlaps [start, end)"""
        return not any(busy.overlaps(start, end) for busy in self.busy_intervals)

    @classmethod
    def from_calendar_items(
        cls,
        participant_id: str,
        display_name: str,
        items: Iterable[Any],
        configuration: RequestConfiguration,
        submitted_at: Optional[datetime] = None
    ) -> 'ParticipantAvailability':
        """Project a participant's calendar onto a request's search space"""
        from .availability import project_busy_intervals

        return cls(
            participant_id=participant_id,
            display_name=display_name,
            busy_intervals=tuple(project_busy_intervals(
                items, configuration.date_ranges, configuration.time_ranges
            )),
            submitted_at=submitted_at or datetime.now()
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'uid': self.participant_id,
            'displayName': self.display_name,
            'submittedAt': self.submitted_at.isoformat() if self.submitted_at else None,
            'events': [busy.to_dict() for busy in self.busy_intervals],
        }


@dataclass(frozen=True)
class CommonSlot:
    """
    Candidate meeting interval, margins excluded

    ``available_participants`` lists everyone free for the margin-padded
    window ``[start - margin, end + margin)``.
    """
    start: datetime
    end: datetime
    available_participants: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, 'available_participants', tuple(self.available_participants))

    def same_interval(self, other: 'CommonSlot') -> bool:
        return self.start == other.start and self.end == other.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start': self.start.isoformat(),
            'end': self.end.isoformat(),
            'availableParticipants': list(self.available_participants),
        }


class HangoutStatus(Enum):
    """Lifecycle of a hangout request"""
    PENDING = "pending"
    PENDING_CALCULATION = "pending_calculation"
    RESULTS_READY = "results_ready"
    NO_SLOTS_FOUND = "no_slots_found"
    CONFIRMED = "confirmed"
    CLOSED = "closed"

    @property
    def is_final(self) -> bool:
        return self in (HangoutStatus.CONFIRMED, HangoutStatus.CLOSED)


@dataclass(frozen=True)
class HangoutRequest:
    """A scheduling request with its participants and computed candidates"""
    request_id: str
    creator_uid: str
    creator_name: str
    request_name: str
    configuration: RequestConfiguration
    status: HangoutStatus = HangoutStatus.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    participants: Dict[str, ParticipantAvailability] = field(default_factory=dict)
    common_slots: Tuple[CommonSlot, ...] = ()
    final_slot: Optional[CommonSlot] = None

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.request_id,
            'creatorUid': self.creator_uid,
            'creatorName': self.creator_name,
            'requestName': self.request_name,
            'status': self.status.value,
            'createdAt': self.created_at.isoformat(),
            **self.configuration.to_dict(),
            'participants': {
                uid: participant.to_dict() for uid, participant in self.participants.items()
            },
            'commonAvailabilitySlots': [slot.to_dict() for slot in self.common_slots],
            'finalSelectedSlot': self.final_slot.to_dict() if self.final_slot else None,
        }


__all__ = [
    'SchedulingConfigurationError',
    'iter_search_cells',
    'DateRange',
    'TimeRange',
    'RequestConfiguration',
    'BusyInterval',
    'ParticipantAvailability',
    'CommonSlot',
    'HangoutStatus',
    'HangoutRequest',
]
