"""Tests for closed dates and closed weekdays"""

from datetime import date, timedelta

import pytest

from tablebook.errors import ConflictError, NotFoundError
from tablebook.services import closures
from tablebook.services.availability import check_availability

from tests.factories import SERVICE_DATE, add_settings


def test_weekday_index_starts_on_sunday():
    assert closures.weekday_index(date(2024, 6, 2)) == 0  # Sunday
    assert closures.weekday_index(date(2024, 6, 3)) == 1  # Monday
    assert closures.weekday_index(date(2024, 6, 1)) == 6  # Saturday


@pytest.mark.asyncio
async def test_open_by_default(test_db, test_tenant):
    assert await closures.is_date_closed(test_db, test_tenant.id, SERVICE_DATE) is False


@pytest.mark.asyncio
async def test_explicit_closed_date(test_db, test_tenant):
    await closures.block_day(test_db, test_tenant.id, SERVICE_DATE, "Private event")

    assert await closures.is_date_closed(test_db, test_tenant.id, SERVICE_DATE) is True
    assert await closures.is_date_closed(test_db, test_tenant.id, SERVICE_DATE + timedelta(days=1)) is False


@pytest.mark.asyncio
async def test_closed_weekday(test_db, test_tenant):
    await add_settings(test_db, test_tenant.id, closed_weekdays="0,6")

    assert await closures.is_date_closed(test_db, test_tenant.id, date(2024, 6, 1)) is True  # Saturday
    assert await closures.is_date_closed(test_db, test_tenant.id, date(2024, 6, 2)) is True  # Sunday
    assert await closures.is_date_closed(test_db, test_tenant.id, date(2024, 6, 3)) is False


@pytest.mark.asyncio
async def test_closed_dates_are_tenant_scoped(test_db, test_tenant, other_tenant):
    await closures.block_day(test_db, test_tenant.id, SERVICE_DATE)

    assert await closures.is_date_closed(test_db, other_tenant.id, SERVICE_DATE) is False


@pytest.mark.asyncio
async def test_closed_date_empties_availability(test_db, test_tenant):
    """Closed days have no availability whatever the inventory says"""
    assert await check_availability(test_db, test_tenant.id, SERVICE_DATE, "dinner", 2)

    await closures.block_day(test_db, test_tenant.id, SERVICE_DATE)

    assert await check_availability(test_db, test_tenant.id, SERVICE_DATE, "dinner", 2) == []


@pytest.mark.asyncio
async def test_closed_weekday_empties_availability_in_flexible_mode(test_db, test_tenant):
    await add_settings(test_db, test_tenant.id, flexible_capacity="true", closed_weekdays="6")

    assert await check_availability(test_db, test_tenant.id, SERVICE_DATE, "lunch", 2) == []


@pytest.mark.asyncio
async def test_block_day_twice_conflicts(test_db, test_tenant):
    tenant_id = test_tenant.id
    await closures.block_day(test_db, tenant_id, SERVICE_DATE)

    with pytest.raises(ConflictError) as exc_info:
        await closures.block_day(test_db, tenant_id, SERVICE_DATE)

    assert exc_info.value.code == "ALREADY_CLOSED"


@pytest.mark.asyncio
async def test_unblock_day(test_db, test_tenant):
    await closures.block_day(test_db, test_tenant.id, SERVICE_DATE)
    await closures.unblock_day(test_db, test_tenant.id, SERVICE_DATE)

    assert await closures.is_date_closed(test_db, test_tenant.id, SERVICE_DATE) is False


@pytest.mark.asyncio
async def test_unblock_open_day_is_not_found(test_db, test_tenant):
    with pytest.raises(NotFoundError):
        await closures.unblock_day(test_db, test_tenant.id, SERVICE_DATE)


@pytest.mark.asyncio
async def test_get_blocked_days_ordered_from_date(test_db, test_tenant):
    for offset in (5, 1, 3):
        await closures.block_day(test_db, test_tenant.id, SERVICE_DATE + timedelta(days=offset))
    await closures.block_day(test_db, test_tenant.id, SERVICE_DATE - timedelta(days=10))

    days = await closures.get_blocked_days(test_db, test_tenant.id, from_date=SERVICE_DATE)

    assert [closed.date for closed in days] == [
        SERVICE_DATE + timedelta(days=1),
        SERVICE_DATE + timedelta(days=3),
        SERVICE_DATE + timedelta(days=5),
    ]
