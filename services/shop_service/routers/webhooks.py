"""Stripe webhook endpoint (no auth; verified by the Stripe-Signature header)."""

import json

from fastapi import APIRouter, Depends, Request
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.shop_service.errors import ValidationError
from services.shop_service.services.payments import (
    handle_webhook_event,
    verify_webhook_signature,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["shop"])
settings = get_settings()
logger = get_logger(__name__)


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
):
    raw = await request.body()
    verify_webhook_signature(
        raw,
        request.headers.get("stripe-signature"),
        settings.STRIPE_WEBHOOK_SECRET,
        tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    )

    try:
        event = json.loads(raw.decode("utf-8") or "{}")
    except ValueError:
        raise ValidationError("Malformed webhook payload")

    return await handle_webhook_event(db, event)
