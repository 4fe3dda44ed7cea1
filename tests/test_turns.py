"""Tests for the turn slot grid"""

from datetime import date, datetime

from tablebook.services.turns import first_slot, generate_time_slots, is_valid_slot, time_slots


def test_generate_time_slots_inclusive():
    assert generate_time_slots("13:00", "14:00", 15) == ["13:00", "13:15", "13:30", "13:45", "14:00"]


def test_lunch_grid():
    slots = time_slots("lunch")

    assert slots[0] == "13:00"
    assert slots[-1] == "15:30"
    assert len(slots) == 11


def test_dinner_grid():
    slots = time_slots("dinner")

    assert slots[0] == "20:00"
    assert slots[-1] == "22:30"


def test_past_slots_dropped_for_today():
    now = datetime(2024, 6, 1, 14, 5)

    assert time_slots("lunch", date(2024, 6, 1), now) == ["14:15", "14:30", "14:45", "15:00", "15:15", "15:30"]
    assert time_slots("lunch", date(2024, 6, 2), now)[0] == "13:00"


def test_is_valid_slot():
    assert is_valid_slot("dinner", "21:45")
    assert not is_valid_slot("dinner", "21:40")
    assert not is_valid_slot("lunch", "20:00")


def test_first_slot():
    assert first_slot("lunch") == "13:00"
    assert first_slot("dinner") == "20:00"
