"""Zone and table management"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from tablebook.errors import NotFoundError
from tablebook.models.inventory import Zone, DiningTable
from tablebook.schemas.inventory import ZoneCreate, TableCreate
from tablebook.services.allocation import get_zone
from tablebook.services.storage import commit_or_raise

logger = structlog.get_logger()


async def list_zones(db: AsyncSession, tenant_id: UUID) -> List[Zone]:
    result = await db.execute(select(Zone).where(Zone.tenant_id == tenant_id).order_by(Zone.id))
    return list(result.scalars().all())


async def create_zone(db: AsyncSession, tenant_id: UUID, data: ZoneCreate) -> Zone:
    zone = Zone(tenant_id=tenant_id, **data.model_dump())
    db.add(zone)
    await commit_or_raise(db, "create_zone", tenant_id=str(tenant_id))
    await db.refresh(zone)

    logger.info("Zone created", tenant_id=str(tenant_id), zone_id=zone.id)
    return zone


async def delete_zone(db: AsyncSession, tenant_id: UUID, zone_id: int) -> None:
    """Deletes the zone and its tables; bookings keep their row with no zone"""
    result = await db.execute(select(Zone).where(Zone.id == zone_id, Zone.tenant_id == tenant_id))
    zone = result.scalar_one_or_none()

    if not zone:
        raise NotFoundError("Zone not found")

    await db.delete(zone)
    await commit_or_raise(db, "delete_zone", tenant_id=str(tenant_id), zone_id=zone_id)
    logger.info("Zone deleted", tenant_id=str(tenant_id), zone_id=zone_id)


async def list_tables(db: AsyncSession, tenant_id: UUID, zone_id: Optional[int] = None) -> List[DiningTable]:
    stmt = select(DiningTable).where(DiningTable.tenant_id == tenant_id)
    if zone_id is not None:
        stmt = stmt.where(DiningTable.zone_id == zone_id)

    result = await db.execute(stmt.order_by(DiningTable.zone_id, DiningTable.id))
    return list(result.scalars().all())


async def create_table(db: AsyncSession, tenant_id: UUID, data: TableCreate) -> DiningTable:
    await get_zone(db, tenant_id, data.zone_id)

    table = DiningTable(tenant_id=tenant_id, **data.model_dump())
    db.add(table)
    await commit_or_raise(
        db,
        "create_table",
        conflict_code="DUPLICATE_TABLE",
        conflict_message="A table with that number already exists in the zone",
        tenant_id=str(tenant_id),
    )
    await db.refresh(table)

    logger.info("Table created", tenant_id=str(tenant_id), table_id=table.id, zone_id=table.zone_id)
    return table


async def delete_table(db: AsyncSession, tenant_id: UUID, table_id: int) -> None:
    """Bookings still pointing at the table keep the id as an orphan reference"""
    result = await db.execute(
        select(DiningTable).where(DiningTable.id == table_id, DiningTable.tenant_id == tenant_id)
    )
    table = result.scalar_one_or_none()

    if not table:
        raise NotFoundError("Table not found")

    await db.delete(table)
    await commit_or_raise(db, "delete_table", tenant_id=str(tenant_id), table_id=table_id)
    logger.info("Table deleted", tenant_id=str(tenant_id), table_id=table_id)
