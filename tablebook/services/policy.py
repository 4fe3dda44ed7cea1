"""Tenant lookup and typed policy loading"""

from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from tablebook.errors import NotFoundError, BackendUnavailableError
from tablebook.models.tenant import Tenant, TenantSetting
from tablebook.schemas.settings import TenantPolicy, SettingsUpdate, serialize_settings
from tablebook.services.storage import commit_or_raise

logger = structlog.get_logger()

POLICY_KEYS = tuple(TenantPolicy.model_fields)


async def get_active_tenant(db: AsyncSession, tenant_id: UUID) -> Tenant:
    """Fetch an active tenant or raise NotFoundError"""
    result = await db.execute(
        select(Tenant).where(Tenant.id == tenant_id, Tenant.is_active == True)
    )
    tenant = result.scalar_one_or_none()

    if not tenant:
        raise NotFoundError("Restaurant not found")

    return tenant


def parse_policy(rows: dict) -> TenantPolicy:
    """
    Build a TenantPolicy from raw string rows.

    Each key is validated on its own so one malformed value only resets that
    key to its default.
    """
    values = {}
    for key in POLICY_KEYS:
        raw = rows.get(key)
        if raw is None:
            continue
        try:
            TenantPolicy.model_validate({key: raw})
        except ValidationError:
            logger.warning("Ignoring malformed setting", key=key, value=raw)
            continue
        values[key] = raw
    return TenantPolicy.model_validate(values)


async def load_policy(db: AsyncSession, tenant_id: UUID) -> TenantPolicy:
    """Read the tenant's key/value settings into a typed policy"""
    try:
        result = await db.execute(
            select(TenantSetting.key, TenantSetting.value).where(TenantSetting.tenant_id == tenant_id)
        )
        rows = {key: value for key, value in result.all()}
    except SQLAlchemyError as e:
        logger.error("Failed to load tenant settings", tenant_id=str(tenant_id), error=str(e))
        raise BackendUnavailableError(detail=str(e))

    return parse_policy(rows)


async def update_settings(db: AsyncSession, tenant_id: UUID, changes: SettingsUpdate) -> TenantPolicy:
    """Upsert the provided keys and return the resulting policy"""
    rows = serialize_settings(changes.model_dump(exclude_unset=True))

    result = await db.execute(
        select(TenantSetting).where(
            TenantSetting.tenant_id == tenant_id,
            TenantSetting.key.in_(list(rows)),
        )
    )
    existing = {setting.key: setting for setting in result.scalars().all()}

    for key, value in rows.items():
        if key in existing:
            existing[key].value = value
        else:
            db.add(TenantSetting(tenant_id=tenant_id, key=key, value=value))

    await commit_or_raise(db, "update_settings", tenant_id=str(tenant_id))
    logger.info("Settings updated", tenant_id=str(tenant_id), keys=sorted(rows))

    return await load_policy(db, tenant_id)

