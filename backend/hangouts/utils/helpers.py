"""
Shared Utility Functions for the Hangout Scheduler

Provides common utilities for date/time arithmetic, "HH:mm" parsing,
duration formatting, standard API response envelopes and execution timing
used across the scheduling components.
"""

import inspect
import logging
import re
from typing import Dict, Iterator, Optional, Any, Union
from datetime import datetime, timedelta, date, time
from dateutil import parser as date_parser
from functools import wraps

# Configure module logger
logger = logging.getLogger(__name__)

TIME_OF_DAY_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)$')

# =============================================================================
# Date and Time Utilities
# =============================================================================

def parse_time_of_day(value: str) -> time:
    """
    Parse a 24-hour "HH:mm" string into a time of day

    Raises:
        ValueError: if the string is not a valid "HH:mm" value
    """
    match = TIME_OF_DAY_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time of day '{value}', expected HH:mm")
    return time(int(match.group(1)), int(match.group(2)))


def format_time_of_day(value: time) -> str:
    """Format a time of day as "HH:mm" """
    return value.strftime("%H:%M")


def parse_iso_datetime(value: Union[str, datetime, date]) -> datetime:
    """
    Parse an ISO-8601 boundary value into a naive local datetime

    Offsets are dropped and the wall-clock time is kept; all scheduling
    arithmetic is naive local time.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        parsed = date_parser.isoparse(value)
    return parsed.replace(tzinfo=None)


def as_date(value: Union[date, datetime]) -> date:
    """Calendar day of a date or datetime"""
    return value.date() if isinstance(value, datetime) else value


def start_of_day(value: Union[date, datetime]) -> datetime:
    """Local midnight at the start of the given day"""
    return datetime.combine(as_date(value), time.min)


def end_of_day(value: Union[date, datetime]) -> datetime:
    """Last representable instant of the given day"""
    return datetime.combine(as_date(value), time.max)


def at_time_of_day(day: date, time_of_day: time) -> datetime:
    """Anchor a time of day to a calendar day"""
    return datetime.combine(day, time_of_day)


def iter_days(first_day: date, last_day: date) -> Iterator[date]:
    """Yield every calendar day from first_day to last_day inclusive"""
    current = first_day
    while current <= last_day:
        yield current
        current += timedelta(days=1)


def intervals_overlap(
    start_a: datetime,
    end_a: datetime,
    start_b: datetime,
    end_b: datetime
) -> bool:
    """Half-open interval overlap test for [start_a, end_a) and [start_b, end_b)"""
    return start_a < end_b and end_a > start_b


def format_duration(minutes: int) -> str:
    """Format duration in minutes to human-readable string"""
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    elif minutes < 1440:  # Less than 24 hours
        hours = minutes // 60
        remaining_minutes = minutes % 60
        if remaining_minutes == 0:
            return f"{hours} hour{'s' if hours != 1 else ''}"
        return f"{hours} hour{'s' if hours != 1 else ''} and {remaining_minutes} minute{'s' if remaining_minutes != 1 else ''}"
    else:
        days = minutes // 1440
        remaining_hours = (minutes % 1440) // 60
        if remaining_hours == 0:
            return f"{days} day{'s' if days != 1 else ''}"
        return f"{days} day{'s' if days != 1 else ''} and {remaining_hours} hour{'s' if remaining_hours != 1 else ''}"

# =============================================================================
# API Response Envelopes
# =============================================================================

def create_error_response(
    error_message: str,
    error_code: str = "GENERAL_ERROR",
    details: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Create standardized error response"""
    return {
        "success": False,
        "error": {
            "message": error_message,
            "code": error_code,
            "details": details or {},
            "timestamp": datetime.now().isoformat()
        }
    }


def create_success_response(
    data: Any = None,
    message: str = "Operation completed successfully"
) -> Dict[str, Any]:
    """Create standardized success response"""
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": datetime.now().isoformat()
    }

# =============================================================================
# Performance Utilities
# =============================================================================

def measure_execution_time(func):
    """Decorator to measure function execution time"""
    @wraps(func)
    async def async_wrapper(*args, **kwargs):
        start_time = datetime.now()
        try:
            result = await func(*args, **kwargs)
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.debug(f"{func.__name__} executed in {execution_time:.3f} seconds")
            return result
        except Exception as e:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.error(f"{func.__name__} failed after {execution_time:.3f} seconds: {str(e)}")
            raise

    @wraps(func)
    def sync_wrapper(*args, **kwargs):
        start_time = datetime.now()
        try:
            result = func(*args, **kwargs)
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.debug(f"{func.__name__} executed in {execution_time:.3f} seconds")
            return result
        except Exception as e:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.error(f"{func.__name__} failed after {execution_time:.3f} seconds: {str(e)}")
            raise

    if inspect.iscoroutinefunction(func):
        return async_wrapper
    else:
        return sync_wrapper

# =============================================================================
# Export all utility functions
# =============================================================================

__all__ = [
    # Date/Time utilities
    'parse_time_of_day',
    'format_time_of_day',
    'parse_iso_datetime',
    'as_date',
    'start_of_day',
    'end_of_day',
    'at_time_of_day',
    'iter_days',
    'intervals_overlap',
    'format_duration',

    # Responses
    'create_error_response',
    'create_success_response',

    # Performance
    'measure_execution_time',
]
