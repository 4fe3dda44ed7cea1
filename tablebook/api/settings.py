"""Tenant policy settings endpoints"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tablebook.database import get_db
from tablebook.models.user import User, UserRole
from tablebook.schemas.settings import TenantPolicy, SettingsUpdate
from tablebook.api.auth import get_current_active_user, require_role, verify_tenant_access
from tablebook.services import policy

router = APIRouter()


@router.get("", response_model=TenantPolicy)
async def get_settings(
    tenant_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await verify_tenant_access(tenant_id, current_user)

    await policy.get_active_tenant(db, tenant_id)
    return await policy.load_policy(db, tenant_id)


@router.put("", response_model=TenantPolicy)
async def update_settings(
    tenant_id: UUID,
    changes: SettingsUpdate,
    current_user: User = Depends(require_role(UserRole.RESTAURANT_ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Partial update; only the keys sent are written"""
    await verify_tenant_access(tenant_id, current_user)

    await policy.get_active_tenant(db, tenant_id)
    return await policy.update_settings(db, tenant_id, changes)
