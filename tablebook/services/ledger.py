"""Booking ledger reads shared by availability and allocation"""

from datetime import date
from typing import Set
from uuid import UUID

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tablebook.errors import NotFoundError
from tablebook.models.booking import Booking, BookingStatus, NON_OCCUPYING_STATUSES


def occupying_bookings(tenant_id: UUID, day: date, turn: str):
    """Where-clauses for bookings that hold their assigned table"""
    return (
        Booking.tenant_id == tenant_id,
        Booking.booking_date == day,
        Booking.turn == turn,
        Booking.assigned_table_id.isnot(None),
        Booking.status.notin_(NON_OCCUPYING_STATUSES),
        or_(Booking.consumes_capacity.is_(None), Booking.consumes_capacity == True),
    )


def occupied_tables_subquery(tenant_id: UUID, day: date, turn: str):
    return select(Booking.assigned_table_id).where(*occupying_bookings(tenant_id, day, turn))


async def occupied_table_ids(db: AsyncSession, tenant_id: UUID, day: date, turn: str) -> Set[int]:
    result = await db.execute(occupied_tables_subquery(tenant_id, day, turn))
    return set(result.scalars().all())


def blocked_zones_subquery(tenant_id: UUID, day: date, turn: str):
    return select(Booking.zone_id).where(
        Booking.tenant_id == tenant_id,
        Booking.booking_date == day,
        Booking.turn == turn,
        Booking.status == BookingStatus.BLOCKED.value,
        Booking.zone_id.isnot(None),
    )


async def blocked_zone_ids(db: AsyncSession, tenant_id: UUID, day: date, turn: str) -> Set[int]:
    """Zones taken offline by an admin block for the service"""
    result = await db.execute(blocked_zones_subquery(tenant_id, day, turn))
    return set(result.scalars().all())


async def get_booking(db: AsyncSession, tenant_id: UUID, booking_id: UUID) -> Booking:
    """Fresh copy of the booking with its zone loaded"""
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id, Booking.tenant_id == tenant_id)
        .options(selectinload(Booking.zone))
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()

    if not booking:
        raise NotFoundError("Booking not found")

    return booking


async def get_booking_by_token(db: AsyncSession, tenant_id: UUID, token: UUID) -> Booking:
    result = await db.execute(
        select(Booking).where(Booking.token == token, Booking.tenant_id == tenant_id)
    )
    booking = result.scalar_one_or_none()

    if not booking:
        raise NotFoundError("Booking not found")

    return booking
