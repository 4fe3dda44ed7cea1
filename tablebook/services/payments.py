"""
Deposit payments

The payment provider sits behind a webhook: we POST the booking and get a
checkout URL back, and the provider reports the outcome on
/webhooks/payments. Refunds go through a second webhook.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional
from uuid import UUID

import httpx
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from tablebook.config import settings
from tablebook.errors import BookingError, NotFoundError, PolicyRejectionError
from tablebook.models.booking import Booking, BookingStatus
from tablebook.schemas.booking import PaymentEvent
from tablebook.services.notifications import booking_changed
from tablebook.services.storage import commit_or_raise

logger = structlog.get_logger()

CHECKOUT_URL_KEYS = ("url", "checkoutUrl", "sessionUrl")


class PaymentClient:
    """Thin httpx client for the payment provider webhooks"""

    def __init__(
        self,
        checkout_url: Optional[str] = None,
        refund_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.checkout_url = settings.payment_webhook_url if checkout_url is None else checkout_url
        self.refund_url = settings.payment_refund_url if refund_url is None else refund_url
        self.timeout = settings.webhook_timeout_seconds if timeout is None else timeout
        self.transport = transport

    async def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            return response.json() if response.content else {}

    async def request_checkout(self, booking: Booking) -> Optional[str]:
        """Ask the provider for a checkout session; None when it could not be created"""
        if not self.checkout_url:
            logger.warning("Payment webhook not configured", booking_id=str(booking.id))
            return None

        payload = {
            "bookingId": str(booking.id),
            "amount": float(booking.deposit_amount or 0),
            "name": booking.customer_name,
            "email": booking.customer_email,
            "phone": booking.customer_phone,
            "date": booking.booking_date.isoformat(),
            "time": booking.time,
            "pax": booking.pax,
        }

        try:
            data = await self._post(self.checkout_url, payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Payment request failed", booking_id=str(booking.id), error=str(e))
            return None

        checkout_url = next((data[key] for key in CHECKOUT_URL_KEYS if data.get(key)), None)
        if not checkout_url:
            logger.error("Payment provider returned no checkout URL", booking_id=str(booking.id))
            return None

        logger.info("Checkout session created", booking_id=str(booking.id))
        return checkout_url

    async def request_refund(self, booking: Booking) -> bool:
        if not self.refund_url:
            logger.warning("Refund webhook not configured", booking_id=str(booking.id))
            return False

        payload = {
            "bookingId": str(booking.id),
            "amount": float(booking.deposit_amount or 0),
            "paymentId": booking.payment_id,
        }

        try:
            await self._post(self.refund_url, payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Refund request failed", booking_id=str(booking.id), error=str(e))
            return False

        logger.info("Refund requested", booking_id=str(booking.id))
        return True


async def find_booking(db: AsyncSession, booking_id: UUID) -> Booking:
    """Lookup across tenants; only for authenticated provider callbacks and workers"""
    result = await db.execute(select(Booking).where(Booking.id == booking_id))
    booking = result.scalar_one_or_none()

    if not booking:
        raise NotFoundError("Booking not found")

    return booking


async def confirm_payment(db: AsyncSession, booking_id: UUID, payment_id: Optional[str] = None) -> Booking:
    booking = await find_booking(db, booking_id)

    if booking.status == BookingStatus.CONFIRMED.value:
        return booking
    if booking.status != BookingStatus.PENDING_PAYMENT.value:
        logger.warning("Payment for a booking no longer awaiting it", booking_id=str(booking_id), status=booking.status)
        raise PolicyRejectionError("Booking is not awaiting payment", code="INVALID_TRANSITION")

    booking.status = BookingStatus.CONFIRMED.value
    booking.payment_id = payment_id
    await commit_or_raise(db, "confirm_payment", booking_id=str(booking_id))
    logger.info("Payment confirmed", booking_id=str(booking_id))

    await booking_changed(booking, "payment_confirmed", previous_status=BookingStatus.PENDING_PAYMENT.value)
    return booking


async def expire_unpaid_booking(db: AsyncSession, booking_id: UUID) -> bool:
    """Cancel the booking if it is still waiting for its deposit"""
    booking = await find_booking(db, booking_id)

    if booking.status != BookingStatus.PENDING_PAYMENT.value:
        return False

    booking.status = BookingStatus.CANCELLED.value
    await commit_or_raise(db, "expire_unpaid_booking", booking_id=str(booking_id))
    logger.info("Unpaid booking cancelled", booking_id=str(booking_id))

    await booking_changed(booking, "payment_expired", previous_status=BookingStatus.PENDING_PAYMENT.value)
    return True


async def handle_payment_event(db: AsyncSession, event: PaymentEvent) -> Booking:
    if event.status == "succeeded":
        return await confirm_payment(db, event.booking_id, event.payment_id)

    await expire_unpaid_booking(db, event.booking_id)
    return await find_booking(db, event.booking_id)


async def expire_stale_payments(db: AsyncSession, now: Optional[datetime] = None) -> int:
    """
    Cancel every booking whose payment window has run out.

    The window starts when the booking entered ``pending_payment``, not when
    it was created; rows without that mark fall back to their creation time.
    """
    cutoff = (now or datetime.utcnow()) - timedelta(minutes=settings.payment_timeout_minutes)

    result = await db.execute(
        select(Booking.id).where(
            Booking.status == BookingStatus.PENDING_PAYMENT.value,
            func.coalesce(Booking.payment_requested_at, Booking.created_at) < cutoff,
        )
    )

    expired = 0
    for booking_id in result.scalars().all():
        try:
            if await expire_unpaid_booking(db, booking_id):
                expired += 1
        except BookingError as e:
            logger.error("Failed to expire booking", booking_id=str(booking_id), error=e.message)

    logger.info("Stale payments expired", expired_count=expired)
    return expired
