"""Service calendar endpoints: availability, admin blocks and closed dates"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.database import get_db
from tablebook.models.booking import Turn
from tablebook.models.user import User
from tablebook.schemas.availability import ZoneAvailability
from tablebook.schemas.booking import (
    BlockCreate,
    BookingResponse,
    ClosedDateCreate,
    ClosedDateResponse,
    OperationResult,
)
from tablebook.api.auth import get_current_active_user, verify_tenant_access
from tablebook.services import closures
from tablebook.services.availability import check_availability
from tablebook.services.blocking import create_block
from tablebook.services.ledger import get_booking

router = APIRouter()


@router.get("/availability", response_model=List[ZoneAvailability])
async def get_availability(
    tenant_id: UUID,
    booking_date: date = Query(..., alias="date"),
    turn: Turn = Query(...),
    party_size: int = Query(..., ge=1),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)
    return await check_availability(db, tenant_id, booking_date, turn, party_size)


@router.post("/blocks", response_model=BookingResponse, status_code=201)
async def block_service(
    tenant_id: UUID,
    request: BlockCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Take a zone, or a single table, offline for one service"""
    await verify_tenant_access(tenant_id, current_user)

    block = await create_block(
        db,
        tenant_id,
        request.booking_date,
        request.turn,
        request.zone_id,
        request.reason,
        table_id=request.table_id,
    )
    return await get_booking(db, tenant_id, block.id)


@router.get("/closed_dates", response_model=List[ClosedDateResponse])
async def list_closed_dates(
    tenant_id: UUID,
    from_date: Optional[date] = None,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)
    return await closures.get_blocked_days(db, tenant_id, from_date)


@router.post("/closed_dates", response_model=ClosedDateResponse, status_code=201)
async def close_date(
    tenant_id: UUID,
    request: ClosedDateCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)

    if request.reason:
        return await closures.block_day(db, tenant_id, request.date, request.reason)
    return await closures.block_day(db, tenant_id, request.date)


@router.delete("/closed_dates/{day}", response_model=OperationResult)
async def reopen_date(
    tenant_id: UUID,
    day: date,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)

    await closures.unblock_day(db, tenant_id, day)
    return OperationResult()
