"""Background job tasks"""

from contextlib import asynccontextmanager
from typing import Any, Dict
from uuid import UUID
import asyncio

import httpx
import structlog

from tablebook.jobs.celery_app import celery_app
from tablebook.config import settings

logger = structlog.get_logger()


def run_async(coro):
    """Helper to run async functions in sync context"""
    return asyncio.run(coro)


@asynccontextmanager
async def task_session():
    """Session on a throwaway engine; each task runs on its own event loop"""
    from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
    from sqlalchemy.pool import NullPool

    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_factory() as db:
            yield db
    finally:
        await engine.dispose()


@celery_app.task(name="deliver_booking_notification")
def deliver_booking_notification(event: str, booking: Dict[str, Any]):
    """POST a booking change to the tenant notification webhook"""
    if not settings.notification_webhook_url:
        logger.debug("Notification webhook not configured", change=event)
        return

    try:
        response = httpx.post(
            settings.notification_webhook_url,
            json={"event": event, "booking": booking},
            timeout=settings.webhook_timeout_seconds,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(
            "Failed to deliver booking notification",
            change=event,
            booking_id=booking.get("id"),
            error=str(e),
        )
        return

    logger.info("Booking notification delivered", change=event, booking_id=booking.get("id"))


@celery_app.task(name="request_deposit_payment")
def request_deposit_payment(booking_id: str):
    """Create a checkout session for a booking put into pending_payment by staff"""
    logger.info("Requesting deposit payment", booking_id=booking_id)

    async def _request():
        from tablebook.services.payments import PaymentClient, find_booking

        async with task_session() as db:
            booking = await find_booking(db, UUID(booking_id))
            return await PaymentClient().request_checkout(booking)

    return run_async(_request())


@celery_app.task(name="expire_unpaid_booking")
def expire_unpaid_booking(booking_id: str):
    """Cancel a booking whose deposit never arrived"""

    async def _expire():
        from tablebook.errors import NotFoundError
        from tablebook.services import payments

        async with task_session() as db:
            try:
                return await payments.expire_unpaid_booking(db, UUID(booking_id))
            except NotFoundError:
                logger.info("Booking gone before expiry", booking_id=booking_id)
                return False

    return run_async(_expire())


@celery_app.task(name="expire_stale_payments")
def expire_stale_payments():
    """Sweep for pending payments older than the payment timeout"""
    logger.info("Expiring stale payments")

    async def _sweep():
        from tablebook.services import payments

        async with task_session() as db:
            return await payments.expire_stale_payments(db)

    return run_async(_sweep())


@celery_app.task(name="request_deposit_refund")
def request_deposit_refund(booking_id: str):
    """Give the deposit back after check-in"""
    logger.info("Requesting deposit refund", booking_id=booking_id)

    async def _refund():
        from tablebook.services.payments import PaymentClient, find_booking

        async with task_session() as db:
            booking = await find_booking(db, UUID(booking_id))
            return await PaymentClient().request_refund(booking)

    return run_async(_refund())
