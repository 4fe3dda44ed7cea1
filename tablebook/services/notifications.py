"""Post-write side effects: change feed, notification webhook, payment follow-ups"""

from typing import Any, Dict, Optional

import structlog

from tablebook.config import settings
from tablebook.jobs.dispatch import enqueue
from tablebook.models.booking import Booking, BookingStatus
from tablebook.services.change_feed import change_feed

logger = structlog.get_logger()


def booking_snapshot(booking: Booking) -> Dict[str, Any]:
    """JSON-safe view of a booking for webhooks and the change feed"""
    return {
        "id": str(booking.id),
        "tenant_id": str(booking.tenant_id),
        "booking_date": booking.booking_date.isoformat(),
        "turn": booking.turn,
        "time": booking.time,
        "pax": booking.pax,
        "zone_id": booking.zone_id,
        "assigned_table_id": booking.assigned_table_id,
        "customer_name": booking.customer_name,
        "customer_email": booking.customer_email,
        "customer_phone": booking.customer_phone,
        "status": booking.status,
        "deposit_amount": str(booking.deposit_amount or 0),
        "is_manual": bool(booking.is_manual),
    }


async def booking_changed(
    booking: Booking,
    event: str,
    previous_status: Optional[str] = None,
    request_payment: bool = True,
) -> None:
    """
    Called after a booking write has been committed.

    Nothing in here may fail the write: queue problems are logged by the
    dispatcher and feed delivery is best effort.
    """
    snapshot = booking_snapshot(booking)

    change_feed.publish(booking.tenant_id, {"event": event, "booking": snapshot})
    enqueue("deliver_booking_notification", args=[event, snapshot])

    entered_payment = (
        booking.status == BookingStatus.PENDING_PAYMENT.value
        and previous_status != BookingStatus.PENDING_PAYMENT.value
        and event != "deleted"
    )
    if entered_payment:
        if request_payment:
            enqueue("request_deposit_payment", args=[str(booking.id)])
        enqueue(
            "expire_unpaid_booking",
            args=[str(booking.id)],
            countdown=settings.payment_timeout_minutes * 60,
        )

    logger.debug("Booking change dispatched", booking_id=snapshot["id"], change=event)
