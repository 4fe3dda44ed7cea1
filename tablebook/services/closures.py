"""Closure rules: explicitly closed dates and recurring closed weekdays"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from tablebook.errors import NotFoundError
from tablebook.models.tenant import ClosedDate
from tablebook.schemas.settings import TenantPolicy
from tablebook.services.policy import load_policy
from tablebook.services.storage import commit_or_raise

logger = structlog.get_logger()


def weekday_index(day: date) -> int:
    """0=Sunday .. 6=Saturday"""
    return day.isoweekday() % 7


async def is_date_closed(
    db: AsyncSession,
    tenant_id: UUID,
    day: date,
    policy: Optional[TenantPolicy] = None,
) -> bool:
    """True if the day is an explicitly closed date or falls on a closed weekday"""
    if policy is None:
        policy = await load_policy(db, tenant_id)

    if weekday_index(day) in policy.closed_weekdays:
        return True

    result = await db.execute(
        select(ClosedDate.id).where(
            ClosedDate.tenant_id == tenant_id,
            ClosedDate.date == day,
        )
    )
    return result.first() is not None


async def get_blocked_days(db: AsyncSession, tenant_id: UUID, from_date: Optional[date] = None) -> List[ClosedDate]:
    """Closed dates from ``from_date`` (default today) onwards"""
    from_date = from_date or date.today()
    result = await db.execute(
        select(ClosedDate)
        .where(ClosedDate.tenant_id == tenant_id, ClosedDate.date >= from_date)
        .order_by(ClosedDate.date)
    )
    return list(result.scalars().all())


async def block_day(db: AsyncSession, tenant_id: UUID, day: date, reason: str = "Closed by admin") -> ClosedDate:
    closed = ClosedDate(tenant_id=tenant_id, date=day, reason=reason)
    db.add(closed)
    await commit_or_raise(
        db,
        "block_day",
        conflict_code="ALREADY_CLOSED",
        conflict_message="That date is already closed",
        tenant_id=str(tenant_id),
    )
    logger.info("Day blocked", tenant_id=str(tenant_id), date=day.isoformat())
    return closed


async def unblock_day(db: AsyncSession, tenant_id: UUID, day: date) -> None:
    result = await db.execute(
        select(ClosedDate).where(ClosedDate.tenant_id == tenant_id, ClosedDate.date == day)
    )
    closed = result.scalar_one_or_none()

    if not closed:
        raise NotFoundError("That date is not closed")

    await db.delete(closed)
    await commit_or_raise(db, "unblock_day", tenant_id=str(tenant_id))
    logger.info("Day unblocked", tenant_id=str(tenant_id), date=day.isoformat())
