"""Booking management API endpoints (admin console)"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.database import get_db
from tablebook.models.booking import BookingStatus
from tablebook.models.user import User
from tablebook.schemas.booking import (
    StaffBookingRequest,
    BookingUpdate,
    BookingResponse,
    BookingListResponse,
    BookingResult,
    OperationResult,
)
from tablebook.api.auth import get_current_active_user, verify_tenant_access
from tablebook.services import allocation
from tablebook.services.ledger import get_booking

router = APIRouter()


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    tenant_id: UUID,
    booking_date: date = Query(..., alias="date"),
    status: Optional[BookingStatus] = None,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Bookings of a day, blocks and waitlist included; `status=waiting_list` lists the queue in arrival order"""
    await verify_tenant_access(tenant_id, current_user)

    bookings = await allocation.list_bookings_by_date(db, tenant_id, booking_date, status)
    return BookingListResponse(items=bookings, total=len(bookings))


@router.post("", response_model=BookingResult, status_code=201)
async def create_staff_booking(
    tenant_id: UUID,
    request: StaffBookingRequest,
    waitlist: bool = Query(False),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Manual booking; skips the availability re-check"""
    await verify_tenant_access(tenant_id, current_user)
    return await allocation.create_booking(db, tenant_id, request, is_waitlist=waitlist, staff=True)


@router.put("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    tenant_id: UUID,
    booking_id: UUID,
    changes: BookingUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)

    await allocation.update_booking(db, tenant_id, booking_id, changes)
    return await get_booking(db, tenant_id, booking_id)


@router.delete("/{booking_id}", response_model=OperationResult)
async def delete_booking(
    tenant_id: UUID,
    booking_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)

    await allocation.delete_booking(db, tenant_id, booking_id)
    return OperationResult()


@router.post("/{booking_id}/check_in", response_model=BookingResponse)
async def check_in(
    tenant_id: UUID,
    booking_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark the guest as arrived"""
    await verify_tenant_access(tenant_id, current_user)

    await allocation.check_in_booking(db, tenant_id, booking_id)
    return await get_booking(db, tenant_id, booking_id)


@router.post("/{booking_id}/no_show", response_model=BookingResponse)
async def no_show(
    tenant_id: UUID,
    booking_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)

    await allocation.mark_no_show(db, tenant_id, booking_id)
    return await get_booking(db, tenant_id, booking_id)
