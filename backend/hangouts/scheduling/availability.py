"""
Availability Projection

Projects a participant's calendar onto a hangout request's search space:
recurring stamps are expanded once over the request's bounding window, then
every occurrence is clipped to each (day, daily time range) cell it touches.
"""

import logging
from typing import Dict, List, Iterable, Sequence, Tuple
from datetime import datetime

from ..services.calendar_items import CalendarItem, expand_recurring_items
from ..utils.helpers import intervals_overlap
from .models import (
    BusyInterval, DateRange, TimeRange, SchedulingConfigurationError, iter_search_cells
)

logger = logging.getLogger(__name__)


def project_busy_intervals(
    items: Iterable[CalendarItem],
    date_ranges: Sequence[DateRange],
    time_ranges: Sequence[TimeRange]
) -> List[BusyInterval]:
    """
    Busy intervals of one participant restricted to ``date_ranges x time_ranges``

    Args:
        items: The participant's stored calendar items (plain and stamps)
        date_ranges: Inclusive calendar-day ranges of the request
        time_ranges: Daily windows of the request

    Returns:
        Clipped busy intervals, unique by (title, start, end), each lying
        entirely inside one search cell

    Raises:
        SchedulingConfigurationError: if either range list is empty
    """
    if not date_ranges or not time_ranges:
        raise SchedulingConfigurationError("date ranges and time ranges must both be non-empty")

    items = list(items)
    if not items:
        return []

    window_start = min(dr.start for dr in date_ranges)
    window_end = max(dr.end for dr in date_ranges)
    occurrences = expand_recurring_items(items, window_start, window_end)

    unique: Dict[Tuple[str, datetime, datetime], BusyInterval] = {}
    for _day, _time_range, cell_start, cell_end in iter_search_cells(date_ranges, time_ranges):
        for occurrence in occurrences:
            if not intervals_overlap(occurrence.start, occurrence.end, cell_start, cell_end):
                continue

            clipped_start = max(occurrence.start, cell_start)
            clipped_end = min(occurrence.end, cell_end)
            if clipped_end <= clipped_start:
                continue

            key = (occurrence.title, clipped_start, clipped_end)
            if key not in unique:
                unique[key] = BusyInterval(title=occurrence.title, start=clipped_start, end=clipped_end)

    logger.debug(
        f"Projected {len(occurrences)} occurrences into {len(unique)} busy intervals "
        f"between {window_start} and {window_end}"
    )
    return list(unique.values())


__all__ = ['project_busy_intervals']
