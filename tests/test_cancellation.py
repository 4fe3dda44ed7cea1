"""Tests for self-service cancellation"""

from datetime import date, datetime, timedelta
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import select

from tablebook.errors import NotFoundError, PolicyRejectionError
from tablebook.models.booking import Booking
from tablebook.schemas.settings import SettingsUpdate
from tablebook.services.cancellation import cancel_booking
from tablebook.services.policy import update_settings

from tests.factories import SERVICE_DATE, add_booking

MADRID = ZoneInfo("Europe/Madrid")

# Dinner at 21:00 on the service date, Madrid time
BOOKING_START = datetime(2024, 6, 1, 21, 0, tzinfo=MADRID)


async def status_of(db, booking_id):
    result = await db.execute(select(Booking.status).where(Booking.id == booking_id))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_cancel_with_enough_notice(test_db, test_tenant, feed_events):
    booking_id, token = await add_booking(test_db, test_tenant.id, table_id=test_tenant.terrace_table_ids[0])

    booking = await cancel_booking(test_db, test_tenant.id, token, now=BOOKING_START - timedelta(days=2))

    assert booking.status == "cancelled"
    assert await status_of(test_db, booking_id) == "cancelled"
    assert feed_events()[-1]["event"] == "cancelled"


@pytest.mark.asyncio
async def test_cancel_exactly_at_threshold_succeeds(test_db, test_tenant):
    _, token = await add_booking(test_db, test_tenant.id)

    booking = await cancel_booking(test_db, test_tenant.id, token, now=BOOKING_START - timedelta(minutes=1440))

    assert booking.status == "cancelled"


@pytest.mark.asyncio
async def test_late_cancellation_rejected(test_db, test_tenant):
    tenant_id = test_tenant.id
    booking_id, token = await add_booking(test_db, tenant_id)

    with pytest.raises(PolicyRejectionError) as exc_info:
        await cancel_booking(test_db, tenant_id, token, now=BOOKING_START - timedelta(minutes=1439))

    assert exc_info.value.code == "LATE_CANCELLATION"
    assert await status_of(test_db, booking_id) == "confirmed"


@pytest.mark.asyncio
async def test_notice_uses_tenant_timezone(test_db, test_tenant):
    """A naive `now` is read as restaurant local time"""
    tenant_id = test_tenant.id
    _, token = await add_booking(test_db, tenant_id)
    naive_now = datetime(2024, 5, 31, 21, 30)

    with pytest.raises(PolicyRejectionError):
        await cancel_booking(test_db, tenant_id, token, now=naive_now)


@pytest.mark.asyncio
async def test_utc_now_is_converted(test_db, test_tenant):
    _, token = await add_booking(test_db, test_tenant.id)
    # 24h before 21:00 Madrid (UTC+2 in June) is 19:00 UTC the day before
    utc_now = datetime(2024, 5, 31, 19, 0, tzinfo=ZoneInfo("UTC"))

    booking = await cancel_booking(test_db, test_tenant.id, token, now=utc_now)

    assert booking.status == "cancelled"


@pytest.mark.asyncio
async def test_cancel_is_idempotent(test_db, test_tenant):
    _, token = await add_booking(test_db, test_tenant.id, status="cancelled")

    # Inside the notice window, but nothing to do
    booking = await cancel_booking(test_db, test_tenant.id, token, now=BOOKING_START)

    assert booking.status == "cancelled"


@pytest.mark.asyncio
async def test_unknown_token_is_not_found(test_db, test_tenant):
    booking_id, _ = await add_booking(test_db, test_tenant.id)

    with pytest.raises(NotFoundError):
        await cancel_booking(test_db, test_tenant.id, uuid4(), now=BOOKING_START - timedelta(days=3))

    assert await status_of(test_db, booking_id) == "confirmed"


@pytest.mark.asyncio
async def test_token_from_other_tenant_is_not_found(test_db, test_tenant, other_tenant):
    _, token = await add_booking(test_db, test_tenant.id)

    with pytest.raises(NotFoundError):
        await cancel_booking(test_db, other_tenant.id, token, now=BOOKING_START - timedelta(days=3))


@pytest.mark.asyncio
async def test_completed_booking_cannot_be_cancelled(test_db, test_tenant):
    _, token = await add_booking(test_db, test_tenant.id, status="completed")

    with pytest.raises(PolicyRejectionError) as exc_info:
        await cancel_booking(test_db, test_tenant.id, token, now=BOOKING_START - timedelta(days=3))

    assert exc_info.value.code == "INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_zero_notice_allows_cancelling_until_start(test_db, test_tenant):
    await update_settings(test_db, test_tenant.id, SettingsUpdate(min_notice_minutes=0))
    _, token = await add_booking(test_db, test_tenant.id, booking_date=SERVICE_DATE)

    booking = await cancel_booking(test_db, test_tenant.id, token, now=BOOKING_START)

    assert booking.status == "cancelled"


@pytest.mark.asyncio
async def test_notice_window_across_spring_forward(test_db, test_tenant):
    """Clocks go forward on 2024-03-31 in Madrid, so the same wall time a day earlier is only 23h away"""
    tenant_id = test_tenant.id
    booking_id, token = await add_booking(test_db, tenant_id, booking_date=date(2024, 3, 31))

    with pytest.raises(PolicyRejectionError) as exc_info:
        await cancel_booking(test_db, tenant_id, token, now=datetime(2024, 3, 30, 21, 0, tzinfo=MADRID))

    assert exc_info.value.code == "LATE_CANCELLATION"
    assert await status_of(test_db, booking_id) == "confirmed"


@pytest.mark.asyncio
async def test_notice_window_across_fall_back(test_db, test_tenant):
    """Clocks go back on 2024-10-27, so 23 wall-clock hours earlier is a full day away"""
    _, token = await add_booking(test_db, test_tenant.id, booking_date=date(2024, 10, 27))

    booking = await cancel_booking(test_db, test_tenant.id, token, now=datetime(2024, 10, 26, 22, 0, tzinfo=MADRID))

    assert booking.status == "cancelled"
