"""Coupon validation, discount computation and admin management.

Validation is side-effect free; usage is only recorded when an order is paid.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from libs.common.currency import percent_of
from libs.common.datetime_utils import as_utc, utc_now
from libs.common.logging import get_logger
from services.shop_service.errors import (
    CouponError,
    CouponRejection,
    NotFoundError,
    ValidationError,
)
from services.shop_service.models import (
    AuditEntityType,
    Coupon,
    DiscountType,
    Order,
    Product,
)
from services.shop_service.schemas import CouponCreate, CouponUpdate
from services.shop_service.services.audit import log_audit
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def normalize_code(code: str) -> str:
    return code.strip().upper()


def _is_restricted(coupon: Coupon) -> bool:
    return coupon.category_id is not None or bool(coupon.products)


def _line_matches(coupon: Coupon, line) -> bool:
    if line.product_id in coupon.product_ids:
        return True
    return coupon.category_id is not None and line.category_id == coupon.category_id


def applicable_subtotal(coupon: Coupon, lines: Sequence) -> int:
    """Sum of line totals the coupon applies to; everything when unrestricted."""
    if not _is_restricted(coupon):
        return sum(line.line_total for line in lines)
    return sum(line.line_total for line in lines if _line_matches(coupon, line))


def check_coupon(
    coupon: Optional[Coupon],
    cart_total: int,
    lines: Sequence,
    now: Optional[datetime] = None,
) -> Coupon:
    """Raise CouponError for the first failing check, else return the coupon."""
    now = now or utc_now()
    if coupon is None:
        raise CouponError(CouponRejection.NOT_FOUND, "Invalid coupon code")
    if not coupon.is_active:
        raise CouponError(CouponRejection.INACTIVE, "This coupon is not active")
    if coupon.expires_at is not None and now > as_utc(coupon.expires_at):
        raise CouponError(CouponRejection.EXPIRED, "This coupon has expired")
    if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
        raise CouponError(
            CouponRejection.USAGE_EXCEEDED, "This coupon has reached its usage limit"
        )
    if coupon.minimum_cart_total is not None and cart_total < coupon.minimum_cart_total:
        raise CouponError(
            CouponRejection.MINIMUM_NOT_MET,
            f"Minimum order value is {coupon.minimum_cart_total} Ft",
        )
    if _is_restricted(coupon) and not any(
        _line_matches(coupon, line) for line in lines
    ):
        raise CouponError(
            CouponRejection.NOT_APPLICABLE,
            "This coupon does not apply to any item in the cart",
        )
    return coupon


def compute_discount(coupon: Coupon, base: int) -> int:
    if base <= 0:
        return 0
    if coupon.discount_type == DiscountType.FIXED:
        discount = min(int(Decimal(coupon.value)), base)
    else:
        discount = percent_of(base, coupon.value)
        if coupon.maximum_discount is not None:
            discount = min(discount, coupon.maximum_discount)
        discount = min(discount, base)
    return max(discount, 0)


async def get_coupon_by_code(db: AsyncSession, code: str) -> Optional[Coupon]:
    result = await db.execute(
        select(Coupon).where(Coupon.code == normalize_code(code))
    )
    return result.scalar_one_or_none()


async def validate_coupon(
    db: AsyncSession,
    code: str,
    cart_total: int,
    lines: Sequence,
    now: Optional[datetime] = None,
) -> tuple[Coupon, int]:
    """Look the code up and price it against the cart. No writes."""
    coupon = check_coupon(await get_coupon_by_code(db, code), cart_total, lines, now)
    return coupon, compute_discount(coupon, applicable_subtotal(coupon, lines))


async def consume_coupon(db: AsyncSession, code: str) -> Optional[Coupon]:
    """Record one use. Runs inside the paid transition; does not commit."""
    result = await db.execute(
        select(Coupon)
        .where(Coupon.code == normalize_code(code))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    coupon = result.scalar_one_or_none()
    if coupon is None:
        logger.warning("Paid order references unknown coupon %s", code)
        return None

    if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
        logger.warning(
            "Coupon %s used past its limit (%d/%d) by a concurrent order",
            coupon.code,
            coupon.usage_count + 1,
            coupon.usage_limit,
        )
    coupon.usage_count += 1
    return coupon


# ============================================================================
# ADMIN
# ============================================================================


async def _load_products(
    db: AsyncSession, product_ids: Sequence[uuid.UUID]
) -> list[Product]:
    if not product_ids:
        return []
    result = await db.execute(select(Product).where(Product.id.in_(product_ids)))
    products = list(result.scalars().all())
    if len(products) != len(set(product_ids)):
        raise ValidationError("Unknown product in coupon restriction")
    return products


async def get_coupon(db: AsyncSession, coupon_id: uuid.UUID) -> Coupon:
    result = await db.execute(select(Coupon).where(Coupon.id == coupon_id))
    coupon = result.scalar_one_or_none()
    if not coupon:
        raise NotFoundError("Coupon not found")
    return coupon


async def list_coupons(
    db: AsyncSession, *, active_only: bool = False
) -> list[Coupon]:
    query = select(Coupon).order_by(Coupon.created_at.desc())
    if active_only:
        query = query.where(Coupon.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_coupon(
    db: AsyncSession, data: CouponCreate, *, performed_by: str
) -> Coupon:
    code = normalize_code(data.code)
    if await get_coupon_by_code(db, code):
        raise ValidationError("Coupon code already exists")

    coupon = Coupon(
        **data.model_dump(exclude={"code", "product_ids"}),
        code=code,
        usage_count=0,
    )
    coupon.products = await _load_products(db, data.product_ids)
    db.add(coupon)
    await db.flush()

    log_audit(
        db,
        AuditEntityType.COUPON,
        coupon.id,
        "created",
        performed_by,
        new_value={"code": code, "value": str(coupon.value)},
    )
    await db.commit()
    logger.info("Coupon %s created by %s", code, performed_by)
    return await get_coupon(db, coupon.id)


async def update_coupon(
    db: AsyncSession,
    coupon_id: uuid.UUID,
    data: CouponUpdate,
    *,
    performed_by: str,
) -> Coupon:
    coupon = await get_coupon(db, coupon_id)
    updates = data.model_dump(exclude_unset=True)

    if (
        coupon.discount_type == DiscountType.PERCENTAGE
        and updates.get("value") is not None
        and updates["value"] > 100
    ):
        raise ValidationError("Percentage discount cannot exceed 100")

    product_ids = updates.pop("product_ids", None)
    if product_ids is not None:
        coupon.products = await _load_products(db, product_ids)

    old_value = {k: str(getattr(coupon, k)) for k in updates}
    for field, value in updates.items():
        setattr(coupon, field, value)

    log_audit(
        db,
        AuditEntityType.COUPON,
        coupon.id,
        "updated",
        performed_by,
        old_value=old_value,
        new_value={k: str(v) for k, v in updates.items()},
    )
    await db.commit()
    return await get_coupon(db, coupon.id)


async def delete_coupon(
    db: AsyncSession, coupon_id: uuid.UUID, *, performed_by: str
) -> Optional[Coupon]:
    """Delete an unused coupon; one referenced by an order is deactivated instead.

    Returns the deactivated coupon, or None when it was deleted.
    """
    coupon = await get_coupon(db, coupon_id)
    used = await db.execute(
        select(func.count(Order.id)).where(Order.coupon_code == coupon.code)
    )
    if used.scalar_one():
        coupon.is_active = False
        log_audit(db, AuditEntityType.COUPON, coupon.id, "deactivated", performed_by)
        await db.commit()
        return coupon

    log_audit(
        db,
        AuditEntityType.COUPON,
        coupon.id,
        "deleted",
        performed_by,
        old_value={"code": coupon.code},
    )
    await db.delete(coupon)
    await db.commit()
    return None
