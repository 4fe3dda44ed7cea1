"""
Allocation / booking writer

Creates ledger rows, decides their initial status from tenant policy and
picks a concrete table when the caller did not.

Availability is read and the booking is written in separate round trips.
Two requests can therefore pick the same free table; the partial unique index
on (tenant, date, turn, assigned table) makes the second insert fail, and that
failure is surfaced as a TABLE_TAKEN conflict for the caller to retry after a
fresh availability check.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from tablebook.errors import ConflictError, InvalidRequestError, PolicyRejectionError
from tablebook.jobs.dispatch import enqueue
from tablebook.models.booking import Booking, BookingStatus, Turn, NON_OCCUPYING_STATUSES
from tablebook.models.inventory import Zone, DiningTable
from tablebook.schemas.booking import BookingRequest, StaffBookingRequest, BookingUpdate, BookingResult
from tablebook.schemas.settings import TenantPolicy
from tablebook.services.availability import availability_engine
from tablebook.services.closures import is_date_closed
from tablebook.services.ledger import get_booking, occupied_table_ids
from tablebook.services.notifications import booking_changed
from tablebook.services.policy import get_active_tenant, load_policy
from tablebook.services.storage import commit_or_raise
from tablebook.services.turns import is_valid_slot

logger = structlog.get_logger()

CENTS = Decimal("0.01")

TABLE_TAKEN_MESSAGE = "That table has just been taken, please check availability again"

# Lifecycle: which status may follow which
ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING_APPROVAL.value: {
        BookingStatus.PENDING_PAYMENT.value,
        BookingStatus.CONFIRMED.value,
        BookingStatus.CANCELLED.value,
    },
    BookingStatus.PENDING_PAYMENT.value: {BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value},
    BookingStatus.CONFIRMED.value: {BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value},
    BookingStatus.WAITING_LIST.value: {
        BookingStatus.PENDING_APPROVAL.value,
        BookingStatus.PENDING_PAYMENT.value,
        BookingStatus.CONFIRMED.value,
        BookingStatus.CANCELLED.value,
    },
    BookingStatus.BLOCKED.value: {BookingStatus.CANCELLED.value},
    BookingStatus.COMPLETED.value: set(),
    BookingStatus.CANCELLED.value: set(),
}

ZERO_DEPOSIT_STATUSES = (BookingStatus.WAITING_LIST.value, BookingStatus.BLOCKED.value)


def validate_transition(current: str, new: str) -> None:
    if current == new:
        return
    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise PolicyRejectionError(
            f"A {current} booking cannot become {new}",
            code="INVALID_TRANSITION",
        )


def decide_status(
    policy: TenantPolicy,
    pax: int,
    is_waitlist: bool,
    forced_status: Optional[str] = None,
) -> Tuple[str, Decimal]:
    """Initial status and deposit for a new booking"""
    deposit = Decimal("0") if is_waitlist else (pax * policy.deposit_per_person).quantize(CENTS)

    if forced_status:
        status = BookingStatus(forced_status).value
        if status in ZERO_DEPOSIT_STATUSES:
            deposit = Decimal("0")
    elif is_waitlist:
        status = BookingStatus.WAITING_LIST.value
    elif policy.require_manual_approval:
        status = BookingStatus.PENDING_APPROVAL.value
    elif policy.enable_deposit and deposit > 0:
        status = BookingStatus.PENDING_PAYMENT.value
    else:
        status = BookingStatus.CONFIRMED.value

    return status, deposit


async def get_zone(db: AsyncSession, tenant_id: UUID, zone_id: int) -> Zone:
    result = await db.execute(select(Zone).where(Zone.id == zone_id, Zone.tenant_id == tenant_id))
    zone = result.scalar_one_or_none()

    if not zone:
        raise InvalidRequestError("Unknown zone")

    return zone


async def get_table(db: AsyncSession, tenant_id: UUID, table_id: int) -> DiningTable:
    if table_id is None or table_id <= 0:
        raise InvalidRequestError("Table id must be a positive number")

    result = await db.execute(
        select(DiningTable).where(DiningTable.id == table_id, DiningTable.tenant_id == tenant_id)
    )
    table = result.scalar_one_or_none()

    if not table:
        raise InvalidRequestError("Unknown table")

    return table


async def pick_free_table(
    db: AsyncSession,
    tenant_id: UUID,
    zone_id: int,
    day: date,
    turn: str,
    pax: int,
) -> Optional[int]:
    """First suitable table in the zone, by ascending id, not held by another booking"""
    result = await db.execute(
        select(DiningTable.id)
        .where(
            DiningTable.tenant_id == tenant_id,
            DiningTable.zone_id == zone_id,
            DiningTable.min_pax <= pax,
            DiningTable.max_pax >= pax,
        )
        .order_by(DiningTable.id)
    )
    suitable = result.scalars().all()
    occupied = await occupied_table_ids(db, tenant_id, day, turn)

    for table_id in suitable:
        if table_id not in occupied:
            return table_id

    return None


async def create_booking(
    db: AsyncSession,
    tenant_id: UUID,
    request: Union[BookingRequest, StaffBookingRequest],
    is_waitlist: bool = False,
    *,
    staff: bool = False,
) -> BookingResult:
    """
    Create a reservation, waitlist entry or staff booking.

    Self-service requests are re-validated against closures, the turn grid and
    current availability. Staff requests may force a status, a table, a
    deposit amount, or mark the booking as not consuming capacity.
    """
    await get_active_tenant(db, tenant_id)
    policy = await load_policy(db, tenant_id)
    turn = Turn(request.turn).value

    forced_status = getattr(request, "status", None) if staff else None
    preselected_table = getattr(request, "assigned_table_id", None) if staff else None
    consumes_capacity = getattr(request, "consumes_capacity", True) if staff else True

    log = logger.bind(
        tenant_id=str(tenant_id),
        date=request.booking_date.isoformat(),
        turn=turn,
        pax=request.pax,
        zone_id=request.zone_id,
        waitlist=is_waitlist,
        manual=staff,
    )

    if not staff:
        if not is_valid_slot(turn, request.time):
            raise InvalidRequestError("That time is not available for this turn")
        if await is_date_closed(db, tenant_id, request.booking_date, policy):
            raise PolicyRejectionError("The restaurant is closed on that date", code="DATE_CLOSED")
        if not is_waitlist:
            if request.zone_id is None:
                raise InvalidRequestError("A zone must be chosen")
            zones = await availability_engine.check(db, tenant_id, request.booking_date, turn, request.pax)
            if request.zone_id not in {zone.zone_id for zone in zones}:
                raise ConflictError("No availability left in that zone", code="NO_AVAILABILITY")

    if request.zone_id is not None:
        await get_zone(db, tenant_id, request.zone_id)

    status, deposit = decide_status(policy, request.pax, is_waitlist, forced_status)
    if staff and request.deposit_amount is not None and status not in ZERO_DEPOSIT_STATUSES:
        deposit = request.deposit_amount.quantize(CENTS)

    holds_table = consumes_capacity and status not in NON_OCCUPYING_STATUSES
    assigned_table_id = None

    if consumes_capacity and preselected_table is not None:
        await get_table(db, tenant_id, preselected_table)
        if holds_table and preselected_table in await occupied_table_ids(db, tenant_id, request.booking_date, turn):
            raise ConflictError(TABLE_TAKEN_MESSAGE, code="TABLE_TAKEN")
        assigned_table_id = preselected_table
    elif holds_table and request.zone_id is not None:
        assigned_table_id = await pick_free_table(
            db, tenant_id, request.zone_id, request.booking_date, turn, request.pax
        )
        if assigned_table_id is None:
            log.warning("No free table left in zone, booking stays unassigned")

    booking = Booking(
        id=uuid.uuid4(),
        token=uuid.uuid4(),
        tenant_id=tenant_id,
        booking_date=request.booking_date,
        turn=turn,
        time=request.time,
        pax=request.pax,
        zone_id=request.zone_id,
        assigned_table_id=assigned_table_id,
        customer_name=request.customer_name,
        customer_email=request.customer_email,
        customer_phone=request.customer_phone,
        comments=request.comments,
        status=status,
        deposit_amount=deposit,
        consumes_capacity=consumes_capacity,
        is_manual=staff,
        payment_requested_at=datetime.utcnow() if status == BookingStatus.PENDING_PAYMENT.value else None,
    )
    db.add(booking)
    await commit_or_raise(
        db,
        "create_booking",
        conflict_code="TABLE_TAKEN",
        conflict_message=TABLE_TAKEN_MESSAGE,
        tenant_id=str(tenant_id),
    )

    log.info(
        "Booking created",
        booking_id=str(booking.id),
        status=status,
        assigned_table_id=assigned_table_id,
    )

    # Self-service payments are requested inline so the caller gets a checkout URL
    await booking_changed(booking, "created", request_payment=staff)

    return BookingResult(
        booking_id=booking.id,
        token=booking.token,
        status=status,
        assigned_table_id=assigned_table_id,
        deposit_amount=deposit,
        message=policy.manual_validation_message if status == BookingStatus.PENDING_APPROVAL.value else None,
    )


async def update_booking(db: AsyncSession, tenant_id: UUID, booking_id: UUID, changes: BookingUpdate) -> Booking:
    """Staff edit of an existing booking"""
    booking = await get_booking(db, tenant_id, booking_id)
    policy = await load_policy(db, tenant_id)
    previous_status = booking.status
    data = changes.model_dump(exclude_unset=True)

    if data.get("status") is not None:
        data["status"] = BookingStatus(data["status"]).value
        validate_transition(booking.status, data["status"])
    if data.get("turn") is not None:
        data["turn"] = Turn(data["turn"]).value
    if data.get("zone_id") is not None:
        await get_zone(db, tenant_id, data["zone_id"])
    if data.get("assigned_table_id") is not None:
        await get_table(db, tenant_id, data["assigned_table_id"])

    for field, value in data.items():
        setattr(booking, field, value)

    if booking.consumes_capacity is False:
        booking.assigned_table_id = None
    if booking.status in ZERO_DEPOSIT_STATUSES:
        booking.deposit_amount = Decimal("0")

    if booking.status == BookingStatus.PENDING_PAYMENT.value and previous_status != booking.status:
        if not booking.deposit_amount:
            booking.deposit_amount = (booking.pax * policy.deposit_per_person).quantize(CENTS)
        if not booking.deposit_amount:
            await db.rollback()
            raise PolicyRejectionError("There is no deposit to collect", code="INVALID_TRANSITION")
        booking.payment_requested_at = datetime.utcnow()

    await commit_or_raise(
        db,
        "update_booking",
        conflict_code="TABLE_TAKEN",
        conflict_message=TABLE_TAKEN_MESSAGE,
        tenant_id=str(tenant_id),
        booking_id=str(booking_id),
    )
    logger.info("Booking updated", tenant_id=str(tenant_id), booking_id=str(booking_id), fields=sorted(data))

    await booking_changed(booking, "updated", previous_status=previous_status)
    return booking


async def set_status(db: AsyncSession, tenant_id: UUID, booking_id: UUID, status: BookingStatus, event: str) -> Booking:
    booking = await get_booking(db, tenant_id, booking_id)
    previous_status = booking.status
    validate_transition(previous_status, status.value)

    booking.status = status.value
    await commit_or_raise(db, event, tenant_id=str(tenant_id), booking_id=str(booking_id))
    logger.info("Booking status changed", booking_id=str(booking_id), old=previous_status, new=status.value)

    await booking_changed(booking, event, previous_status=previous_status)
    return booking


async def check_in_booking(db: AsyncSession, tenant_id: UUID, booking_id: UUID) -> Booking:
    """Guest arrived: complete the booking and give the deposit back"""
    booking = await set_status(db, tenant_id, booking_id, BookingStatus.COMPLETED, "checked_in")
    if booking.deposit_amount and booking.deposit_amount > 0:
        enqueue("request_deposit_refund", args=[str(booking.id)])
    return booking


async def mark_no_show(db: AsyncSession, tenant_id: UUID, booking_id: UUID) -> Booking:
    """Guest never came: cancel and keep the deposit"""
    return await set_status(db, tenant_id, booking_id, BookingStatus.CANCELLED, "no_show")


async def delete_booking(db: AsyncSession, tenant_id: UUID, booking_id: UUID) -> None:
    """Hard delete; any assigned table is free again immediately"""
    booking = await get_booking(db, tenant_id, booking_id)
    await db.delete(booking)
    await commit_or_raise(db, "delete_booking", tenant_id=str(tenant_id), booking_id=str(booking_id))
    logger.info("Booking deleted", tenant_id=str(tenant_id), booking_id=str(booking_id))

    await booking_changed(booking, "deleted")


async def list_bookings_by_date(
    db: AsyncSession,
    tenant_id: UUID,
    day: date,
    status: Optional[BookingStatus] = None,
) -> List[Booking]:
    """
    Bookings of one day, by arrival time.

    The waiting list is served first come, first served, so it is ordered by
    creation time instead.
    """
    stmt = (
        select(Booking)
        .where(Booking.tenant_id == tenant_id, Booking.booking_date == day)
        .options(selectinload(Booking.zone))
    )

    if status is not None:
        stmt = stmt.where(Booking.status == BookingStatus(status).value)

    if status is not None and BookingStatus(status) == BookingStatus.WAITING_LIST:
        stmt = stmt.order_by(Booking.created_at, Booking.id)
    else:
        stmt = stmt.order_by(Booking.time, Booking.created_at)

    result = await db.execute(stmt)
    return list(result.scalars().all())
