"""Tests for deposit payments and the provider webhook"""

import json
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import httpx
import pytest

from tablebook.errors import NotFoundError, PolicyRejectionError
from tablebook.services.ledger import get_booking
from tablebook.schemas.booking import BookingUpdate
from tablebook.schemas.settings import SettingsUpdate
from tablebook.services import allocation
from tablebook.services.payments import PaymentClient, confirm_payment, expire_stale_payments, expire_unpaid_booking
from tablebook.services.policy import update_settings

from tests.factories import SERVICE_DATE, add_booking, booking_request

WEBHOOK_HEADERS = {"X-Webhook-Secret": "test-webhook-secret"}


def pending_booking():
    return SimpleNamespace(
        id=uuid4(),
        deposit_amount=Decimal("15.00"),
        customer_name="Ana García",
        customer_email="ana@example.com",
        customer_phone="+34600000000",
        booking_date=SERVICE_DATE,
        time="21:00",
        pax=3,
        payment_id="pi_123",
    )


def client_returning(status_code=200, body=None, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(json.loads(request.content))
        return httpx.Response(status_code, json=body if body is not None else {})

    return PaymentClient(
        checkout_url="https://pay.test/checkout",
        refund_url="https://pay.test/refund",
        transport=httpx.MockTransport(handler),
    )


class TestPaymentClient:
    @pytest.mark.asyncio
    async def test_checkout_payload_and_url(self):
        seen = []
        client = client_returning(body={"url": "https://pay.test/s/abc"}, seen=seen)
        booking = pending_booking()

        url = await client.request_checkout(booking)

        assert url == "https://pay.test/s/abc"
        assert seen[0]["bookingId"] == str(booking.id)
        assert seen[0]["amount"] == 15.0
        assert seen[0]["date"] == "2024-06-01"
        assert seen[0]["pax"] == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["checkoutUrl", "sessionUrl"])
    async def test_alternative_url_keys(self, key):
        client = client_returning(body={key: "https://pay.test/s/xyz"})

        assert await client.request_checkout(pending_booking()) == "https://pay.test/s/xyz"

    @pytest.mark.asyncio
    async def test_provider_error_returns_none(self):
        client = client_returning(status_code=502)

        assert await client.request_checkout(pending_booking()) is None

    @pytest.mark.asyncio
    async def test_missing_url_returns_none(self):
        client = client_returning(body={"id": "cs_1"})

        assert await client.request_checkout(pending_booking()) is None

    @pytest.mark.asyncio
    async def test_unconfigured_checkout(self):
        client = PaymentClient(checkout_url="", refund_url="")

        assert await client.request_checkout(pending_booking()) is None
        assert await client.request_refund(pending_booking()) is False

    @pytest.mark.asyncio
    async def test_refund_payload(self):
        seen = []
        client = client_returning(seen=seen)
        booking = pending_booking()

        assert await client.request_refund(booking) is True
        assert seen[0] == {"bookingId": str(booking.id), "amount": 15.0, "paymentId": "pi_123"}


@pytest.mark.asyncio
async def test_confirm_payment(test_db, test_tenant, feed_events):
    booking_id, _ = await add_booking(test_db, test_tenant.id, status="pending_payment")

    booking = await confirm_payment(test_db, booking_id, "pi_999")

    assert booking.status == "confirmed"
    assert booking.payment_id == "pi_999"
    assert feed_events()[-1]["event"] == "payment_confirmed"


@pytest.mark.asyncio
async def test_confirm_payment_is_idempotent(test_db, test_tenant):
    booking_id, _ = await add_booking(test_db, test_tenant.id, status="confirmed")

    booking = await confirm_payment(test_db, booking_id, "pi_999")

    assert booking.status == "confirmed"


@pytest.mark.asyncio
async def test_confirm_cancelled_booking_rejected(test_db, test_tenant):
    booking_id, _ = await add_booking(test_db, test_tenant.id, status="cancelled")

    with pytest.raises(PolicyRejectionError):
        await confirm_payment(test_db, booking_id)


@pytest.mark.asyncio
async def test_confirm_unknown_booking(test_db, test_tenant):
    with pytest.raises(NotFoundError):
        await confirm_payment(test_db, uuid4())


@pytest.mark.asyncio
async def test_expire_unpaid_booking(test_db, test_tenant):
    tenant_id = test_tenant.id
    pending_id, _ = await add_booking(test_db, tenant_id, status="pending_payment")
    paid_id, _ = await add_booking(test_db, tenant_id, status="confirmed", time="21:15")

    assert await expire_unpaid_booking(test_db, pending_id) is True
    assert await expire_unpaid_booking(test_db, paid_id) is False

    assert (await get_booking(test_db, tenant_id, pending_id)).status == "cancelled"
    assert (await get_booking(test_db, tenant_id, paid_id)).status == "confirmed"


class TestPaymentWebhook:
    @pytest.mark.asyncio
    async def test_succeeded_confirms(self, client, test_db, test_tenant):
        booking_id, _ = await add_booking(test_db, test_tenant.id, status="pending_payment")

        response = await client.post(
            "/webhooks/payments",
            json={"booking_id": str(booking_id), "status": "succeeded", "payment_id": "pi_1"},
            headers=WEBHOOK_HEADERS,
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "booking_id": str(booking_id), "status": "confirmed"}

    @pytest.mark.asyncio
    async def test_failed_releases(self, client, test_db, test_tenant):
        booking_id, _ = await add_booking(test_db, test_tenant.id, status="pending_payment")

        response = await client.post(
            "/webhooks/payments",
            json={"booking_id": str(booking_id), "status": "failed"},
            headers=WEBHOOK_HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [{}, {"X-Webhook-Secret": "wrong"}])
    async def test_bad_secret_rejected(self, client, test_db, test_tenant, headers):
        booking_id, _ = await add_booking(test_db, test_tenant.id, status="pending_payment")

        response = await client.post(
            "/webhooks/payments",
            json={"booking_id": str(booking_id), "status": "succeeded"},
            headers=headers,
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_booking(self, client, test_tenant):
        response = await client.post(
            "/webhooks/payments",
            json={"booking_id": str(uuid4()), "status": "succeeded"},
            headers=WEBHOOK_HEADERS,
        )

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


class TestStalePaymentSweep:
    NOW = datetime(2024, 5, 30, 12, 0)

    @pytest.mark.asyncio
    async def test_expires_payment_past_timeout(self, test_db, test_tenant):
        tenant_id = test_tenant.id
        stale_id, _ = await add_booking(
            test_db, tenant_id, status="pending_payment", payment_requested_at=self.NOW - timedelta(hours=1)
        )
        fresh_id, _ = await add_booking(
            test_db, tenant_id, status="pending_payment", time="21:15",
            payment_requested_at=self.NOW - timedelta(minutes=5),
        )

        assert await expire_stale_payments(test_db, now=self.NOW) == 1

        assert (await get_booking(test_db, tenant_id, stale_id)).status == "cancelled"
        assert (await get_booking(test_db, tenant_id, fresh_id)).status == "pending_payment"

    @pytest.mark.asyncio
    async def test_timeout_counts_from_payment_request(self, test_db, test_tenant):
        """An old booking that only just started waiting for its deposit is kept"""
        tenant_id = test_tenant.id
        booking_id, _ = await add_booking(
            test_db,
            tenant_id,
            status="pending_payment",
            created_at=self.NOW - timedelta(hours=2),
            payment_requested_at=self.NOW - timedelta(minutes=1),
        )

        assert await expire_stale_payments(test_db, now=self.NOW) == 0
        assert (await get_booking(test_db, tenant_id, booking_id)).status == "pending_payment"

    @pytest.mark.asyncio
    async def test_approved_booking_gets_a_full_payment_window(self, test_db, test_tenant):
        tenant_id = test_tenant.id
        await update_settings(test_db, tenant_id, SettingsUpdate(require_manual_approval=True))
        result = await allocation.create_booking(test_db, tenant_id, booking_request(test_tenant.terrace_id))
        assert result.status == "pending_approval"

        booking = await get_booking(test_db, tenant_id, result.booking_id)
        booking.created_at = datetime.utcnow() - timedelta(hours=2)
        await test_db.commit()

        await allocation.update_booking(test_db, tenant_id, result.booking_id, BookingUpdate(status="pending_payment"))

        assert await expire_stale_payments(test_db) == 0
        assert (await get_booking(test_db, tenant_id, result.booking_id)).status == "pending_payment"

    @pytest.mark.asyncio
    async def test_rows_without_request_time_use_creation_time(self, test_db, test_tenant):
        tenant_id = test_tenant.id
        booking_id, _ = await add_booking(
            test_db, tenant_id, status="pending_payment", created_at=self.NOW - timedelta(hours=2)
        )

        assert await expire_stale_payments(test_db, now=self.NOW) == 1
        assert (await get_booking(test_db, tenant_id, booking_id)).status == "cancelled"
