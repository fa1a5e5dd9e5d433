"""Time parsing and slot-grid calculations"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional

from ...errors import InvalidInputError

logger = logging.getLogger(__name__)


def parse_date(value) -> date:
    """Parse a YYYY-MM-DD calendar date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise InvalidInputError("Invalid date format. Expected YYYY-MM-DD") from None


def parse_time(value) -> time:
    """Parse "HH:MM" (24h) or "HH:MM AM" (12h) into a time"""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)

    raw = str(value or "").strip()
    for fmt in ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p"):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue

    logger.debug(f"Failed to parse time format: {raw}")
    raise InvalidInputError("Invalid time format. Expected HH:MM")


def weekday_name(day: date) -> str:
    return day.strftime("%A").lower()


def add_minutes(start: time, minutes: int) -> time:
    """Shift a time of day; callers guarantee the result stays on the same day"""
    return (datetime.combine(date.min, start) + timedelta(minutes=minutes)).time()


def minutes_between(start: time, end: time) -> int:
    delta = datetime.combine(date.min, end) - datetime.combine(date.min, start)
    return int(delta.total_seconds() // 60)


def overlaps(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """Half-open interval overlap: [a_start, a_end) vs [b_start, b_end)"""
    return start_a < end_b and start_b < end_a


def generate_slot_grid(
    work_start: time,
    work_end: time,
    slot_minutes: int,
    break_start: Optional[time] = None,
    break_end: Optional[time] = None,
) -> Iterator[tuple[time, time]]:
    """
    Yield (start, end) pairs from work_start at slot_minutes granularity.
    A slot must finish by work_end; slots touching the break window are skipped.
    """
    if slot_minutes <= 0:
        raise InvalidInputError("Slot length must be positive")

    total = minutes_between(work_start, work_end)
    offset = 0
    while offset + slot_minutes <= total:
        start = add_minutes(work_start, offset)
        end = add_minutes(work_start, offset + slot_minutes)
        offset += slot_minutes

        if break_start and break_end and overlaps(start, end, break_start, break_end):
            continue
        yield start, end


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def format_time_12h(value: time) -> str:
    hour, minute = value.hour, value.minute
    period = "AM" if hour < 12 else "PM"
    display_hour = hour if hour <= 12 else hour - 12
    if display_hour == 0:
        display_hour = 12
    return f"{display_hour}:{minute:02d} {period}"
