"""Payment provider webhook handlers"""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from tablebook.config import settings
from tablebook.database import get_db
from tablebook.schemas.booking import PaymentEvent
from tablebook.services.payments import handle_payment_event

router = APIRouter()
logger = structlog.get_logger()


def verify_webhook_secret(x_webhook_secret: Optional[str] = Header(default=None)) -> None:
    """Shared-secret check; an unset secret rejects every call"""
    expected = settings.payment_webhook_secret
    if not expected or not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        logger.warning("Rejected payment webhook with bad secret")
        raise HTTPException(status_code=401, detail="Invalid webhook secret")


@router.post("/payments", dependencies=[Depends(verify_webhook_secret)])
async def handle_payment_webhook(
    event: PaymentEvent,
    db: AsyncSession = Depends(get_db),
):
    """
    Payment outcome for a pending booking.

    ``succeeded`` confirms the booking; ``failed`` and ``expired`` release it.
    """
    logger.info(
        "Payment event received",
        booking_id=str(event.booking_id),
        status=event.status,
    )

    booking = await handle_payment_event(db, event)
    return {"success": True, "booking_id": str(booking.id), "status": booking.status}
