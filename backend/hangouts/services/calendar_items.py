"""
Calendar Items and Recurrence Expansion

Calendar entries come in three shapes: plain occurrences, recurring
templates ("stamps") and occurrences derived from a template. The expander
turns a user's stored items into the concrete occurrences visible inside a
window of calendar days.
"""

import logging
from typing import Dict, List, Optional, Any, Iterable, Union, Tuple
from datetime import datetime, date, timedelta
from dataclasses import dataclass
from enum import Enum

from dateutil.rrule import rrule, DAILY

from ..utils.helpers import (
    as_date, start_of_day, end_of_day, parse_iso_datetime, measure_execution_time
)

logger = logging.getLogger(__name__)

DEFAULT_ITEM_COLOR = "#3174ad"


class DayKey(Enum):
    """Weekday symbols, Sunday first (0=Sunday ... 6=Saturday)"""
    SUN = 0
    MON = 1
    TUE = 2
    WED = 3
    THU = 4
    FRI = 5
    SAT = 6

    @property
    def index(self) -> int:
        return self.value

    @property
    def python_weekday(self) -> int:
        """Matching ``date.weekday()`` value (0=Monday)"""
        return (self.value - 1) % 7

    @classmethod
    def from_date(cls, day: date) -> 'DayKey':
        return cls((day.weekday() + 1) % 7)

    @classmethod
    def parse(cls, value: Union[str, int, 'DayKey']) -> 'DayKey':
        if isinstance(value, DayKey):
            return value
        if isinstance(value, int):
            return cls(value)
        return cls[value.strip().upper()]


@dataclass(frozen=True)
class PlainOccurrence:
    """A standalone calendar entry with absolute start and end"""
    id: str
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    color: str = DEFAULT_ITEM_COLOR
    emoji: Optional[str] = None
    is_stamp: bool = False
    hangout_request_id: Optional[str] = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


@dataclass(frozen=True)
class RecurringTemplate:
    """
    Recurring stamp definition

    ``start``/``end`` only supply the time of day and nominal duration, plus
    the first day the recurrence may land on.
    """
    id: str
    title: str
    start: datetime
    end: datetime
    repeat_days: Tuple[DayKey, ...] = ()
    repeat_end_date: Optional[date] = None
    all_day: bool = False
    color: str = DEFAULT_ITEM_COLOR
    emoji: Optional[str] = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def has_active_rule(self) -> bool:
        return bool(self.repeat_days) and self.repeat_end_date is not None

    def as_plain(self) -> PlainOccurrence:
        """A template without an active rule behaves like a one-off stamp"""
        return PlainOccurrence(
            id=self.id,
            title=self.title,
            start=self.start,
            end=self.end,
            all_day=self.all_day,
            color=self.color,
            emoji=self.emoji,
            is_stamp=True
        )

    def occurrence_on(self, day: date) -> 'DerivedOccurrence':
        """Instantiate this template on a calendar day"""
        occurrence_start = datetime.combine(day, self.start.time())
        return DerivedOccurrence(
            id=derived_occurrence_id(self.id, day),
            title=self.title,
            start=occurrence_start,
            end=occurrence_start + self.duration,
            original_stamp_id=self.id,
            occurrence_date=day,
            all_day=self.all_day,
            color=self.color,
            emoji=self.emoji
        )


@dataclass(frozen=True)
class DerivedOccurrence:
    """A concrete instance of a recurring template; never expanded again"""
    id: str
    title: str
    start: datetime
    end: datetime
    original_stamp_id: str
    occurrence_date: date
    all_day: bool = False
    color: str = DEFAULT_ITEM_COLOR
    emoji: Optional[str] = None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


CalendarItem = Union[PlainOccurrence, RecurringTemplate, DerivedOccurrence]
Occurrence = Union[PlainOccurrence, DerivedOccurrence]


def derived_occurrence_id(template_id: str, day: date) -> str:
    """Deterministic identity of a template instance on a given day"""
    return f"{template_id}_{day.strftime('%Y%m%d')}"

# =============================================================================
# Boundary record translation
# =============================================================================

def calendar_item_from_dict(data: Dict[str, Any]) -> CalendarItem:
    """
    Build the matching CalendarItem variant from a stored record

    Records use the camelCase keys of the calendar store (``isStamp``,
    ``repeatDays``, ``repeatEndDate``, ``originalStampId``...).
    """
    common = {
        'id': str(data['id']),
        'title': data.get('title', ''),
        'start': parse_iso_datetime(data['start']),
        'end': parse_iso_datetime(data['end']),
        'all_day': bool(data.get('allDay', False)),
        'color': data.get('color') or DEFAULT_ITEM_COLOR,
        'emoji': data.get('emoji'),
    }

    if data.get('originalStampId'):
        occurrence_date = data.get('occurrenceDate')
        return DerivedOccurrence(
            original_stamp_id=str(data['originalStampId']),
            occurrence_date=as_date(parse_iso_datetime(occurrence_date)) if occurrence_date else common['start'].date(),
            **common
        )

    repeat_days = tuple(DayKey.parse(day) for day in data.get('repeatDays') or ())
    repeat_end_date = data.get('repeatEndDate')
    if data.get('isStamp') and repeat_days and repeat_end_date:
        return RecurringTemplate(
            repeat_days=repeat_days,
            repeat_end_date=as_date(parse_iso_datetime(repeat_end_date)),
            **common
        )

    return PlainOccurrence(
        is_stamp=bool(data.get('isStamp', False)),
        hangout_request_id=data.get('hangoutRequestId'),
        **common
    )


def calendar_item_to_dict(item: CalendarItem) -> Dict[str, Any]:
    """Inverse of :func:`calendar_item_from_dict`"""
    data: Dict[str, Any] = {
        'id': item.id,
        'title': item.title,
        'start': item.start.isoformat(),
        'end': item.end.isoformat(),
        'allDay': item.all_day,
        'color': item.color,
        'emoji': item.emoji,
    }
    if isinstance(item, RecurringTemplate):
        data['isStamp'] = True
        data['repeatDays'] = [day.name for day in item.repeat_days]
        data['repeatEndDate'] = item.repeat_end_date.isoformat() if item.repeat_end_date else None
    elif isinstance(item, DerivedOccurrence):
        data['isStamp'] = True
        data['originalStampId'] = item.original_stamp_id
        data['occurrenceDate'] = item.occurrence_date.isoformat()
    else:
        data['isStamp'] = item.is_stamp
        if item.hangout_request_id:
            data['hangoutRequestId'] = item.hangout_request_id
    return data

# =============================================================================
# Occurrence expansion
# =============================================================================

def _template_days(template: RecurringTemplate, first_day: date, last_day: date) -> Iterable[date]:
    """Days in [first_day, last_day] whose weekday is one of the template's repeat days"""
    by_weekday = tuple(sorted({day.python_weekday for day in template.repeat_days}))
    recurrence = rrule(
        DAILY,
        dtstart=start_of_day(first_day),
        until=start_of_day(last_day),
        byweekday=by_weekday
    )
    for occurrence in recurrence:
        yield occurrence.date()


def expand_template(
    template: RecurringTemplate,
    window_start: Union[date, datetime],
    window_end: Union[date, datetime]
) -> List[DerivedOccurrence]:
    """Concrete occurrences of one recurring template inside a window of days"""
    if template.duration <= timedelta(0):
        logger.warning(f"Skipping template {template.id}: non-positive duration {template.duration}")
        return []

    template_first_day = template.start.date()
    if template.repeat_end_date < template_first_day:
        logger.warning(
            f"Skipping template {template.id}: repeat end {template.repeat_end_date} "
            f"precedes its start {template_first_day}"
        )
        return []

    scan_first = max(as_date(window_start), template_first_day)
    scan_last = min(as_date(window_end), template.repeat_end_date)
    if scan_last < scan_first:
        return []

    return [template.occurrence_on(day) for day in _template_days(template, scan_first, scan_last)]


@measure_execution_time
def expand_recurring_items(
    items: Iterable[CalendarItem],
    window_start: Union[date, datetime],
    window_end: Union[date, datetime]
) -> List[Occurrence]:
    """
    Expand calendar items into the occurrences overlapping a window

    The window is widened to whole days: from the start of ``window_start``'s
    day to the end of ``window_end``'s day. Plain and already-derived items
    pass through unchanged when they overlap it; each recurring template is
    replaced by its derived occurrences. The result is deduplicated by id.

    Args:
        items: Stored calendar items of one user
        window_start: First day (or instant within it) of the window
        window_end: Last day (or instant within it) of the window

    Returns:
        List of plain and derived occurrences, in input order
    """
    window_first = start_of_day(window_start)
    window_last = end_of_day(window_end)

    expanded: List[Occurrence] = []
    for item in items:
        if isinstance(item, RecurringTemplate):
            if item.has_active_rule:
                expanded.extend(expand_template(item, window_first, window_last))
                continue
            item = item.as_plain()

        if item.end <= item.start:
            logger.warning(f"Skipping calendar item {item.id}: end {item.end} is not after start {item.start}")
            continue
        if item.start <= window_last and item.end >= window_first:
            expanded.append(item)

    unique: Dict[str, Occurrence] = {}
    for occurrence in expanded:
        unique[occurrence.id] = occurrence

    logger.debug(f"Expanded {len(unique)} occurrences between {window_first.date()} and {window_last.date()}")
    return list(unique.values())


__all__ = [
    'DayKey',
    'PlainOccurrence',
    'RecurringTemplate',
    'DerivedOccurrence',
    'CalendarItem',
    'Occurrence',
    'derived_occurrence_id',
    'calendar_item_from_dict',
    'calendar_item_to_dict',
    'expand_template',
    'expand_recurring_items',
]
