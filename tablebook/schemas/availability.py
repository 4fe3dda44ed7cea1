"""Availability schemas"""

from datetime import date
from typing import List
from pydantic import BaseModel

from tablebook.models.booking import Turn


class ZoneAvailability(BaseModel):
    """Free capacity of one zone for a service"""
    zone_id: int
    zone_name_es: str
    zone_name_en: str
    available_slots: int


class TimeSlotsResponse(BaseModel):
    date: date
    turn: Turn
    slots: List[str] = []
