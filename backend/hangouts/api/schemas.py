"""
API Schemas - Request/Response models shared by the route modules

Payloads use the camelCase record shape of the calendar store and translate
into the immutable scheduling types through ``to_domain``.
"""

from datetime import datetime, date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..services.calendar_items import CalendarItem, calendar_item_from_dict
from ..scheduling.models import (
    BusyInterval, DateRange, ParticipantAvailability, RequestConfiguration,
    SchedulingConfigurationError, TimeRange
)
from ..utils.config import config
from ..utils.helpers import parse_iso_datetime

DayKeyName = Literal["SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CalendarItemPayload(CamelModel):
    """Calendar event or stamp as stored for a user"""
    id: str = Field("", description="Item id; generated when empty")
    title: str = Field("", description="Event title or stamp label")
    start: datetime
    end: datetime
    all_day: bool = False
    color: Optional[str] = None
    emoji: Optional[str] = None
    is_stamp: bool = False
    repeat_days: Optional[List[DayKeyName]] = Field(None, description="Weekdays a stamp repeats on")
    repeat_end_date: Optional[date] = Field(None, description="Last day a stamp may repeat on")
    original_stamp_id: Optional[str] = None
    occurrence_date: Optional[date] = None
    hangout_request_id: Optional[str] = None

    def to_domain(self) -> CalendarItem:
        return calendar_item_from_dict(self.model_dump(by_alias=True, mode="json"))


class DateRangePayload(CamelModel):
    start: date
    end: date

    def to_domain(self) -> DateRange:
        return DateRange(start=self.start, end=self.end)


class TimeRangePayload(CamelModel):
    start: str = Field(..., description="Daily window start, HH:mm")
    end: str = Field(..., description="Daily window end, HH:mm")

    def to_domain(self) -> TimeRange:
        return TimeRange.parse(self.start, self.end)


class RequestConfigurationPayload(CamelModel):
    """Search space and constraints of a hangout request"""
    date_ranges: List[DateRangePayload] = Field(default_factory=list)
    time_ranges: List[TimeRangePayload] = Field(default_factory=list)
    desired_duration_minutes: int = Field(..., description="Meeting length in minutes")
    desired_margin_minutes: int = Field(0, description="Free buffer required before and after")
    desired_member_count: int = Field(2, description="Minimum number of free participants")

    def to_domain(self) -> RequestConfiguration:
        configuration = RequestConfiguration(
            date_ranges=tuple(dr.to_domain() for dr in self.date_ranges),
            time_ranges=tuple(tr.to_domain() for tr in self.time_ranges),
            desired_duration_minutes=self.desired_duration_minutes,
            desired_margin_minutes=self.desired_margin_minutes,
            desired_member_count=self.desired_member_count
        )
        if configuration.span_days > config.scheduling.max_search_days:
            raise SchedulingConfigurationError(
                f"search space spans {configuration.span_days} days, "
                f"at most {config.scheduling.max_search_days} allowed"
            )
        return configuration


class BusyIntervalPayload(CamelModel):
    title: str = ""
    start: datetime
    end: datetime

    def to_domain(self) -> BusyInterval:
        return BusyInterval(
            title=self.title,
            start=parse_iso_datetime(self.start),
            end=parse_iso_datetime(self.end)
        )


class ParticipantPayload(CamelModel):
    """A participant's already projected busy intervals"""
    uid: str
    display_name: str = ""
    events: List[BusyIntervalPayload] = Field(default_factory=list)

    def to_domain(self) -> ParticipantAvailability:
        return ParticipantAvailability(
            participant_id=self.uid,
            display_name=self.display_name,
            busy_intervals=tuple(event.to_domain() for event in self.events)
        )


__all__ = [
    'CalendarItemPayload',
    'DateRangePayload',
    'TimeRangePayload',
    'RequestConfigurationPayload',
    'BusyIntervalPayload',
    'ParticipantPayload',
]
