"""Turn schedule: the time-slot grid of each service period"""

from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from tablebook.config import settings
from tablebook.models.booking import Turn


def turn_window(turn: Turn) -> Tuple[str, str]:
    if Turn(turn) == Turn.LUNCH:
        return settings.lunch_start, settings.lunch_end
    return settings.dinner_start, settings.dinner_end


def generate_time_slots(start: str, end: str, step_minutes: int = 15) -> List[str]:
    """HH:MM slots from start to end inclusive"""
    current = datetime.strptime(start, "%H:%M")
    last = datetime.strptime(end, "%H:%M")
    slots = []
    while current <= last:
        slots.append(current.strftime("%H:%M"))
        current += timedelta(minutes=step_minutes)
    return slots


def time_slots(turn: Turn, on_date: Optional[date] = None, now: Optional[datetime] = None) -> List[str]:
    """
    Bookable arrival times for a turn.

    When ``on_date`` is today (according to ``now``), slots that have already
    started are dropped.
    """
    start, end = turn_window(turn)
    slots = generate_time_slots(start, end, settings.slot_step_minutes)

    if on_date is not None and now is not None and on_date == now.date():
        current = now.strftime("%H:%M")
        slots = [slot for slot in slots if slot > current]

    return slots


def is_valid_slot(turn: Turn, time: str) -> bool:
    return time in time_slots(turn)


def first_slot(turn: Turn) -> str:
    return turn_window(turn)[0]
