"""Self-service cancellation with a minimum notice window"""

from datetime import datetime, time, timezone
from typing import Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from tablebook.config import settings
from tablebook.errors import PolicyRejectionError
from tablebook.models.booking import Booking, BookingStatus
from tablebook.services.ledger import get_booking_by_token
from tablebook.services.notifications import booking_changed
from tablebook.services.policy import get_active_tenant, load_policy
from tablebook.services.storage import commit_or_raise

logger = structlog.get_logger()


def tenant_zone(name: Optional[str]) -> ZoneInfo:
    try:
        return ZoneInfo(name or settings.default_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown tenant timezone, using default", timezone=name)
        return ZoneInfo(settings.default_timezone)


def minutes_until(booking: Booking, now: datetime, tz: ZoneInfo) -> float:
    starts_at = datetime.combine(booking.booking_date, time.fromisoformat(booking.time), tzinfo=tz)
    # Same-zone subtraction ignores DST offsets
    return (starts_at.astimezone(timezone.utc) - now.astimezone(timezone.utc)).total_seconds() / 60


async def cancel_booking(
    db: AsyncSession,
    tenant_id: UUID,
    token: UUID,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Cancel by public token.

    Already-cancelled bookings are returned untouched. Inside the notice
    window the request is rejected with LATE_CANCELLATION; the boundary
    itself is still allowed.
    """
    tenant = await get_active_tenant(db, tenant_id)
    booking = await get_booking_by_token(db, tenant_id, token)

    if booking.status == BookingStatus.CANCELLED.value:
        return booking
    if booking.status == BookingStatus.COMPLETED.value:
        raise PolicyRejectionError("A completed booking cannot be cancelled", code="INVALID_TRANSITION")

    policy = await load_policy(db, tenant_id)
    tz = tenant_zone(tenant.timezone)
    if now is None:
        now = datetime.now(tz)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=tz)

    remaining = minutes_until(booking, now, tz)
    if remaining < policy.min_notice_minutes:
        logger.info(
            "Late cancellation rejected",
            booking_id=str(booking.id),
            minutes_until=round(remaining),
            min_notice_minutes=policy.min_notice_minutes,
        )
        raise PolicyRejectionError(
            f"Bookings can only be cancelled {policy.min_notice_minutes} minutes in advance",
            code="LATE_CANCELLATION",
        )

    previous_status = booking.status
    booking.status = BookingStatus.CANCELLED.value
    await commit_or_raise(db, "cancel_booking", tenant_id=str(tenant_id), booking_id=str(booking.id))
    logger.info("Booking cancelled", tenant_id=str(tenant_id), booking_id=str(booking.id))

    await booking_changed(booking, "cancelled", previous_status=previous_status)
    return booking
