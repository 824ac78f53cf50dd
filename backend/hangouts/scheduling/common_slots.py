"""
Common Slot Finder - Multi-Participant Availability Search

Stepped scan over a hangout request's search space. For every day and daily
time range a cursor slides forward in fixed steps; each cursor position yields a
margin-padded candidate which is kept when enough participants are free for
the whole padded window.
"""

import logging
from typing import List, Optional, Iterable, Sequence
from datetime import datetime, timedelta

from ..utils.config import config
from ..utils.helpers import measure_execution_time
from .models import (
    CommonSlot, ParticipantAvailability, RequestConfiguration, SchedulingConfigurationError
)

logger = logging.getLogger(__name__)


class CommonSlotFinder:
    """
    Common Slot Search Engine

    Enumerates every candidate meeting slot, at ``step_minutes`` granularity,
    for which at least ``desired_member_count`` participants are free during
    the meeting and its margins. Overlapping candidates are not merged.
    """

    def __init__(self, step_minutes: Optional[int] = None):
        """Initialize the finder with a scan step (defaults to configuration)"""
        self.step_minutes = step_minutes if step_minutes is not None else config.scheduling.step_minutes
        if self.step_minutes <= 0:
            raise SchedulingConfigurationError(f"step must be positive, got {self.step_minutes}")

    @property
    def step(self) -> timedelta:
        return timedelta(minutes=self.step_minutes)

    @measure_execution_time
    def find_common_slots(
        self,
        configuration: RequestConfiguration,
        participants: Iterable[ParticipantAvailability]
    ) -> List[CommonSlot]:
        """
        Find all candidate slots meeting the request's headcount

        Args:
            configuration: Search space, duration, margin and headcount
            participants: Busy intervals of every registered participant

        Returns:
            Candidate slots sorted ascending by start; empty when fewer
            participants are registered than the desired headcount
        """
        participants = list(participants)
        if len(participants) < configuration.desired_member_count:
            logger.info(
                f"Only {len(participants)} of {configuration.desired_member_count} "
                f"required participants registered, skipping search"
            )
            return []

        common_slots: List[CommonSlot] = []
        for _day, _time_range, window_start, window_end in configuration.cells():
            common_slots.extend(
                self.scan_window(configuration, participants, window_start, window_end)
            )

        common_slots.sort(key=lambda slot: slot.start)
        logger.info(
            f"Found {len(common_slots)} common slots across {configuration.span_days} days "
            f"for {len(participants)} participants"
        )
        return common_slots

    def scan_window(
        self,
        configuration: RequestConfiguration,
        participants: Sequence[ParticipantAvailability],
        window_start: datetime,
        window_end: datetime
    ) -> List[CommonSlot]:
        """Scan one day's time window from its start until a padded slot no longer fits"""
        duration = configuration.duration
        margin = configuration.margin

        slots = []
        cursor = window_start
        while cursor < window_end:
            meeting_start = cursor + margin
            meeting_end = meeting_start + duration
            padded_end = meeting_end + margin
            if padded_end > window_end:
                break

            available = self.available_participants(participants, cursor, padded_end)
            if len(available) >= configuration.desired_member_count:
                slots.append(CommonSlot(
                    start=meeting_start,
                    end=meeting_end,
                    available_participants=available
                ))

            cursor += self.step

        return slots

    @staticmethod
    def available_participants(
        participants: Sequence[ParticipantAvailability],
        start: datetime,
        end: datetime
    ) -> List[str]:
        """Ids of participants with no busy interval overlapping [start, end)"""
        return [
            participant.participant_id
            for participant in participants
            if participant.is_free(start, end)
        ]


def find_common_slots(
    configuration: RequestConfiguration,
    participants: Iterable[ParticipantAvailability],
    step_minutes: Optional[int] = None
) -> List[CommonSlot]:
    """Convenience wrapper around :class:`CommonSlotFinder`"""
    return CommonSlotFinder(step_minutes).find_common_slots(configuration, participants)


__all__ = ['CommonSlotFinder', 'find_common_slots']
