"""
Request helpers for tests: bearer tokens and signed Stripe webhooks.
"""

import hashlib
import hmac
import json
import time

from jose import jwt

from libs.common.config import get_settings


def make_token(user_id: str, email: str, role: str = "customer") -> str:
    settings = get_settings()
    claims = {"sub": user_id, "email": email, "role": role}
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers(user_id: str, email: str, role: str = "customer") -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, email, role)}"}


def sign_webhook(payload: bytes, secret: str = None, timestamp: int = None) -> str:
    """Build a Stripe-Signature header for ``payload``."""
    secret = secret or get_settings().STRIPE_WEBHOOK_SECRET
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def payment_succeeded_event(
    order, event_id: str = "evt_test_1", amount: int = None
) -> bytes:
    """A payment_intent.succeeded event for ``order`` as Stripe would send it."""
    amount = order.total_price * 100 if amount is None else amount
    event = {
        "id": event_id,
        "type": "payment_intent.succeeded",
        "data": {
            "object": {
                "id": order.payment_reference or "pi_test_order",
                "object": "payment_intent",
                "amount": amount,
                "amount_received": amount,
                "currency": "huf",
                "metadata": {
                    "orderId": str(order.id),
                    "orderNumber": order.order_number,
                },
            }
        },
    }
    return json.dumps(event).encode("utf-8")
