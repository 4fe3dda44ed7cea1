"""Administrative blocks: take a zone or one table offline for a service"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from tablebook.errors import InvalidRequestError
from tablebook.models.booking import Booking, BookingStatus, Turn
from tablebook.models.inventory import DiningTable
from tablebook.services.allocation import TABLE_TAKEN_MESSAGE, get_zone
from tablebook.services.notifications import booking_changed
from tablebook.services.policy import get_active_tenant
from tablebook.services.storage import commit_or_raise
from tablebook.services.turns import first_slot

logger = structlog.get_logger()


async def create_block(
    db: AsyncSession,
    tenant_id: UUID,
    day: date,
    turn: str,
    zone_id: int,
    reason: str,
    table_id: Optional[int] = None,
) -> Booking:
    """Write a synthetic ``blocked`` booking; the zone disappears from availability for the service"""
    await get_active_tenant(db, tenant_id)

    reason = (reason or "").strip()
    if not reason:
        raise InvalidRequestError("A reason is required")
    try:
        turn = Turn(turn).value
    except ValueError:
        raise InvalidRequestError("Unknown turn")

    await get_zone(db, tenant_id, zone_id)

    pax = 1
    customer_name = f"BLOCK: {reason}"

    if table_id is not None:
        if table_id <= 0:
            raise InvalidRequestError("Table id must be a positive number")
        result = await db.execute(
            select(DiningTable).where(
                DiningTable.id == table_id,
                DiningTable.tenant_id == tenant_id,
                DiningTable.zone_id == zone_id,
            )
        )
        table = result.scalar_one_or_none()
        if not table:
            raise InvalidRequestError("Table does not belong to that zone")

        pax = table.max_pax
        customer_name = f"BLOCK TABLE {table.table_number}: {reason}"

    block = Booking(
        id=uuid.uuid4(),
        token=uuid.uuid4(),
        tenant_id=tenant_id,
        booking_date=day,
        turn=turn,
        time=first_slot(turn),
        pax=pax,
        zone_id=zone_id,
        assigned_table_id=table_id,
        customer_name=customer_name,
        comments=reason,
        status=BookingStatus.BLOCKED.value,
        deposit_amount=Decimal("0"),
        consumes_capacity=True,
        is_manual=True,
    )
    db.add(block)
    await commit_or_raise(
        db,
        "create_block",
        conflict_code="TABLE_TAKEN",
        conflict_message=TABLE_TAKEN_MESSAGE,
        tenant_id=str(tenant_id),
    )

    logger.info(
        "Block created",
        tenant_id=str(tenant_id),
        date=day.isoformat(),
        turn=turn,
        zone_id=zone_id,
        table_id=table_id,
    )

    await booking_changed(block, "blocked")
    return block
