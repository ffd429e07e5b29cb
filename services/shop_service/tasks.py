"""Scheduled shop maintenance tasks. Each opens its own session."""

from __future__ import annotations

from datetime import timedelta

from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.config import AsyncSessionLocal
from services.shop_service.services.gift_cards import expire_gift_cards
from services.shop_service.services.orders import expire_stale_orders
from services.shop_service.services.price_alerts import check_price_alerts

logger = get_logger(__name__)


async def expire_pending_orders() -> int:
    """Cancel pending orders that were never paid and release their holds."""
    ttl = timedelta(minutes=get_settings().ORDER_PENDING_TTL_MINUTES)
    async with AsyncSessionLocal() as db:
        return await expire_stale_orders(db, older_than=ttl)


async def send_price_alerts() -> int:
    async with AsyncSessionLocal() as db:
        return await check_price_alerts(db)


async def expire_overdue_gift_cards() -> int:
    async with AsyncSessionLocal() as db:
        return await expire_gift_cards(db)
