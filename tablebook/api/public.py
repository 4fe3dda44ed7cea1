"""Public booking endpoints used by the guest-facing widget (no auth)"""

from datetime import date, datetime
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.database import get_db
from tablebook.models.booking import BookingStatus, Turn
from tablebook.schemas.availability import ZoneAvailability, TimeSlotsResponse
from tablebook.schemas.booking import BookingRequest, BookingResult, CancelRequest, OperationResult
from tablebook.services.allocation import create_booking
from tablebook.services.availability import check_availability
from tablebook.services.cancellation import cancel_booking, tenant_zone
from tablebook.services.closures import is_date_closed
from tablebook.services.ledger import get_booking
from tablebook.services.payments import PaymentClient
from tablebook.services.policy import get_active_tenant
from tablebook.services.turns import time_slots

router = APIRouter()


def get_payment_client() -> PaymentClient:
    return PaymentClient()


@router.get("/{tenant_id}/availability", response_model=List[ZoneAvailability])
async def get_availability(
    tenant_id: UUID,
    booking_date: date = Query(..., alias="date"),
    turn: Turn = Query(...),
    party_size: int = Query(..., ge=1),
    db: AsyncSession = Depends(get_db),
):
    """Zones that can still seat the party"""
    await get_active_tenant(db, tenant_id)
    return await check_availability(db, tenant_id, booking_date, turn, party_size)


@router.get("/{tenant_id}/time_slots", response_model=TimeSlotsResponse)
async def get_time_slots(
    tenant_id: UUID,
    booking_date: date = Query(..., alias="date"),
    turn: Turn = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Bookable arrival times; past slots are dropped for today"""
    tenant = await get_active_tenant(db, tenant_id)

    if await is_date_closed(db, tenant_id, booking_date):
        return TimeSlotsResponse(date=booking_date, turn=turn, slots=[])

    now = datetime.now(tenant_zone(tenant.timezone))
    return TimeSlotsResponse(date=booking_date, turn=turn, slots=time_slots(turn, booking_date, now))


@router.post("/{tenant_id}/bookings", response_model=BookingResult, status_code=201)
async def create_public_booking(
    tenant_id: UUID,
    request: BookingRequest,
    waitlist: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    payment_client: PaymentClient = Depends(get_payment_client),
):
    """Create a reservation or join the waiting list"""
    result = await create_booking(db, tenant_id, request, is_waitlist=waitlist)

    if result.status == BookingStatus.PENDING_PAYMENT:
        booking = await get_booking(db, tenant_id, result.booking_id)
        result.checkout_url = await payment_client.request_checkout(booking)

    return result


@router.post("/{tenant_id}/bookings/cancel", response_model=OperationResult)
async def cancel_public_booking(
    tenant_id: UUID,
    request: CancelRequest,
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking with the token sent to the guest"""
    await cancel_booking(db, tenant_id, request.token)
    return OperationResult()
