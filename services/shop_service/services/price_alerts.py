"""Price drop alerts: customers ask to be emailed when a product gets cheaper."""

import uuid
from datetime import datetime
from typing import Optional

from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.emails.store import send_price_drop_email
from libs.common.logging import get_logger
from services.shop_service.errors import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from services.shop_service.models import PriceAlert, Product
from services.shop_service.services.catalog import find_product, resolve_unit_price
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


async def upsert_price_alert(
    db: AsyncSession,
    email: str,
    product_id: uuid.UUID,
    target_price: int,
    *,
    user: Optional[AuthUser] = None,
) -> PriceAlert:
    """Create an alert, or re-arm the existing one for this email and product."""
    product = await find_product(db, product_id)
    if product is None or product.is_archived:
        raise NotFoundError("Product not found")

    current_price = resolve_unit_price(product)
    if target_price >= current_price:
        raise ValidationError(
            f"Target price must be below the current price ({current_price} Ft)"
        )

    email = _normalize_email(email)
    result = await db.execute(
        select(PriceAlert).where(
            PriceAlert.email == email, PriceAlert.product_id == product_id
        )
    )
    alert = result.scalar_one_or_none()
    if alert is None:
        alert = PriceAlert(email=email, product_id=product_id)
        db.add(alert)

    alert.target_price = target_price
    alert.triggered = False
    alert.notified_at = None
    if user:
        alert.user_auth_id = user.user_id

    await db.commit()
    return alert


async def list_price_alerts(db: AsyncSession, email: str) -> list[PriceAlert]:
    result = await db.execute(
        select(PriceAlert)
        .where(PriceAlert.email == _normalize_email(email))
        .order_by(PriceAlert.created_at.desc())
    )
    return list(result.scalars().all())


async def delete_price_alert(
    db: AsyncSession, alert_id: uuid.UUID, *, user: AuthUser
) -> None:
    result = await db.execute(select(PriceAlert).where(PriceAlert.id == alert_id))
    alert = result.scalar_one_or_none()
    if alert is None:
        raise NotFoundError("Price alert not found")

    owner = user.email and _normalize_email(user.email) == alert.email
    if not (owner or user.is_admin or alert.user_auth_id == user.user_id):
        raise AuthorizationError("You cannot delete this price alert")

    await db.delete(alert)
    await db.commit()


async def check_price_alerts(
    db: AsyncSession, now: Optional[datetime] = None
) -> int:
    """Notify every armed alert whose product reached its target. Returns count sent."""
    now = now or utc_now()
    result = await db.execute(
        select(PriceAlert)
        .join(Product, Product.id == PriceAlert.product_id)
        .where(PriceAlert.triggered.is_(False), Product.is_archived.is_(False))
    )
    alerts = result.scalars().all()

    sent = 0
    for alert in alerts:
        current_price = resolve_unit_price(alert.product, None, now)
        if current_price > alert.target_price:
            continue

        try:
            delivered = await send_price_drop_email(
                to_email=alert.email,
                product_name=alert.product.name,
                product_slug=alert.product.slug,
                current_price=current_price,
                target_price=alert.target_price,
            )
        except Exception:
            logger.exception("Price drop email failed for alert %s", alert.id)
            delivered = False

        if not delivered:
            # Stays armed; retried next run
            continue

        alert.triggered = True
        alert.notified_at = now
        await db.commit()
        sent += 1

    if sent:
        logger.info("Sent %d price drop alerts", sent)
    return sent
