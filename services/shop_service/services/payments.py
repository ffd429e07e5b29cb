"""
Stripe payment bridge.

Provides:
- An async REST client for creating PaymentIntents
- Webhook signature verification (Stripe ``t=...,v1=...`` scheme)
- Idempotent webhook processing that drives the paid transition
"""

import hashlib
import hmac
import time
import uuid
from dataclasses import dataclass
from typing import Optional

import httpx
from libs.common.config import get_settings
from libs.common.currency import forint_to_minor_units
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.shop_service.errors import (
    ExternalServiceError,
    NotFoundError,
    ShopError,
    ValidationError,
    WebhookSignatureError,
)
from services.shop_service.models import Order, WebhookEvent
from services.shop_service.services.orders import mark_order_paid
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

STRIPE_PROVIDER = "stripe"


@dataclass
class PaymentIntent:
    """The parts of a Stripe PaymentIntent the storefront needs."""

    id: str
    client_secret: str
    amount: int
    currency: str
    status: str


def to_minor_units(amount: int) -> int:
    """HUF is a two-decimal currency on Stripe: 12 990 Ft -> 1299000."""
    return forint_to_minor_units(amount)


class StripeClient:
    """Async client for the Stripe PaymentIntents API."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        self.base_url = (base_url or settings.STRIPE_API_BASE).rstrip("/")
        self._transport = transport
        self._headers = {"Authorization": f"Bearer {self.secret_key}"}

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[dict] = None,
        idempotency_key: Optional[str] = None,
    ) -> dict:
        if not self.secret_key:
            raise ExternalServiceError("Card payments are not configured")
        headers = dict(self._headers)
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=30.0, transport=self._transport
            ) as client:
                response = await client.request(
                    method, endpoint, data=data, headers=headers
                )
        except httpx.HTTPError as e:
            logger.error(f"Stripe request failed: {type(e).__name__}: {e}")
            raise ExternalServiceError("Payment gateway unreachable") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.is_success:
            message = (body.get("error") or {}).get("message") or "Unknown Stripe error"
            logger.error(f"Stripe API error: {response.status_code} - {message}")
            raise ExternalServiceError(message)

        return body

    async def create_payment_intent(
        self,
        amount_minor_units: int,
        currency: str,
        metadata: dict[str, str],
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        form = {
            "amount": str(amount_minor_units),
            "currency": currency,
            "automatic_payment_methods[enabled]": "true",
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = str(value)

        data = await self._request(
            "POST", "/v1/payment_intents", data=form, idempotency_key=idempotency_key
        )
        return PaymentIntent(
            id=data["id"],
            client_secret=data["client_secret"],
            amount=data.get("amount", amount_minor_units),
            currency=data.get("currency", currency),
            status=data.get("status", "requires_payment_method"),
        )


def get_stripe_client() -> StripeClient:
    """FastAPI dependency; tests override it with a mocked transport."""
    return StripeClient()


async def start_card_payment(
    db: AsyncSession, order: Order, client: StripeClient
) -> PaymentIntent:
    """Create the PaymentIntent for an order from its stored total."""
    settings = get_settings()
    intent = await client.create_payment_intent(
        to_minor_units(order.total_price),
        settings.STORE_CURRENCY,
        metadata={"orderId": str(order.id), "orderNumber": order.order_number},
        idempotency_key=f"order-{order.id}",
    )
    order.payment_reference = intent.id
    await db.commit()
    logger.info(
        "PaymentIntent %s created for order %s", intent.id, order.order_number
    )
    return intent


# ============================================================================
# WEBHOOKS
# ============================================================================


def verify_webhook_signature(
    payload: bytes,
    header: Optional[str],
    secret: str,
    tolerance: int = 300,
    now: Optional[int] = None,
) -> None:
    """Check a ``Stripe-Signature`` header. Raises WebhookSignatureError."""
    if not secret:
        raise WebhookSignatureError("Webhook secret not configured")
    if not header:
        raise WebhookSignatureError("Missing signature header")

    timestamp = None
    signatures = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)

    if not timestamp or not signatures:
        raise WebhookSignatureError("Malformed signature header")
    try:
        signed_at = int(timestamp)
    except ValueError:
        raise WebhookSignatureError("Malformed signature timestamp")

    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    expected = hmac.new(
        secret.encode("utf-8"), signed_payload, hashlib.sha256
    ).hexdigest()
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise WebhookSignatureError("Invalid signature")

    now = int(time.time()) if now is None else now
    if tolerance and abs(now - signed_at) > tolerance:
        raise WebhookSignatureError("Signature timestamp outside tolerance")


async def _resolve_order(db: AsyncSession, intent: dict) -> Order:
    metadata = intent.get("metadata") or {}
    order = None

    raw_order_id = metadata.get("orderId")
    if raw_order_id:
        try:
            order_id = uuid.UUID(str(raw_order_id))
        except ValueError:
            order_id = None
        if order_id:
            result = await db.execute(select(Order).where(Order.id == order_id))
            order = result.scalar_one_or_none()

    if order is None and intent.get("id"):
        result = await db.execute(
            select(Order).where(Order.payment_reference == intent["id"])
        )
        order = result.scalar_one_or_none()

    if order is None:
        raise NotFoundError("Order not found for payment")
    return order


async def _handle_payment_succeeded(db: AsyncSession, intent: dict) -> None:
    order = await _resolve_order(db, intent)

    if order.payment_reference and order.payment_reference != intent.get("id"):
        raise ValidationError("Payment reference does not match order")

    received = intent.get("amount_received") or intent.get("amount")
    if received and int(received) != to_minor_units(order.total_price):
        logger.warning(
            f"Stripe amount mismatch for {order.order_number}: "
            f"got {received}, expected {to_minor_units(order.total_price)}",
            extra={"extra_fields": {"order_id": str(order.id)}},
        )
        raise ValidationError("Payment amount does not match order total")

    await mark_order_paid(db, order.id, payment_reference=intent.get("id"))


async def handle_webhook_event(db: AsyncSession, event: dict) -> dict:
    """Process a verified Stripe event once; replays are acknowledged no-ops."""
    event_id = event.get("id")
    event_type = event.get("type") or "unknown"
    if not event_id:
        raise ValidationError("Event id missing")

    result = await db.execute(
        select(WebhookEvent).where(WebhookEvent.event_id == event_id)
    )
    record = result.scalar_one_or_none()
    if record is not None and record.processed:
        logger.info(
            f"Webhook {event_id} skipped - already processed",
            extra={"extra_fields": {"event_id": event_id, "event": event_type}},
        )
        return {"received": True}

    if record is None:
        record = WebhookEvent(
            provider=STRIPE_PROVIDER,
            event_id=event_id,
            event_type=event_type,
            payload=event,
        )
        db.add(record)
    else:
        record.retry_count += 1
    await db.commit()
    record_id = record.id

    intent = (event.get("data") or {}).get("object") or {}
    try:
        if event_type == "payment_intent.succeeded":
            await _handle_payment_succeeded(db, intent)
        elif event_type == "payment_intent.payment_failed":
            error = (intent.get("last_payment_error") or {}).get("message")
            logger.warning(
                f"Payment failed for intent {intent.get('id')}: {error}",
                extra={"extra_fields": {"metadata": intent.get("metadata")}},
            )
        else:
            logger.info(f"Webhook {event_type} acknowledged without action")
    except ShopError as e:
        await db.rollback()
        await db.execute(
            update(WebhookEvent)
            .where(WebhookEvent.id == record_id)
            .values(error=e.detail)
        )
        await db.commit()
        raise

    await db.execute(
        update(WebhookEvent)
        .where(WebhookEvent.id == record_id)
        .values(processed=True, processed_at=utc_now(), error=None)
    )
    await db.commit()
    return {"received": True}
