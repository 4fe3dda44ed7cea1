"""Zone and table management API endpoints"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.database import get_db
from tablebook.models.user import User, UserRole
from tablebook.schemas.booking import OperationResult
from tablebook.schemas.inventory import ZoneCreate, ZoneResponse, TableCreate, TableResponse
from tablebook.api.auth import get_current_active_user, require_role, verify_tenant_access
from tablebook.services import inventory

router = APIRouter()


@router.get("/zones", response_model=List[ZoneResponse])
async def list_zones(
    tenant_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)
    return await inventory.list_zones(db, tenant_id)


@router.post("/zones", response_model=ZoneResponse, status_code=201)
async def create_zone(
    tenant_id: UUID,
    zone_data: ZoneCreate,
    current_user: User = Depends(require_role(UserRole.RESTAURANT_ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)
    return await inventory.create_zone(db, tenant_id, zone_data)


@router.delete("/zones/{zone_id}", response_model=OperationResult)
async def delete_zone(
    tenant_id: UUID,
    zone_id: int,
    current_user: User = Depends(require_role(UserRole.RESTAURANT_ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Delete a zone together with its tables"""
    await verify_tenant_access(tenant_id, current_user)

    await inventory.delete_zone(db, tenant_id, zone_id)
    return OperationResult()


@router.get("/tables", response_model=List[TableResponse])
async def list_tables(
    tenant_id: UUID,
    zone_id: Optional[int] = None,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)
    return await inventory.list_tables(db, tenant_id, zone_id)


@router.post("/tables", response_model=TableResponse, status_code=201)
async def create_table(
    tenant_id: UUID,
    table_data: TableCreate,
    current_user: User = Depends(require_role(UserRole.RESTAURANT_ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)
    return await inventory.create_table(db, tenant_id, table_data)


@router.delete("/tables/{table_id}", response_model=OperationResult)
async def delete_table(
    tenant_id: UUID,
    table_id: int,
    current_user: User = Depends(require_role(UserRole.RESTAURANT_ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)

    await inventory.delete_table(db, tenant_id, table_id)
    return OperationResult()
