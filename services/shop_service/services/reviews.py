"""Product reviews: verified-buyer submissions, moderation and product ratings."""

import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from services.shop_service.errors import (
    AuthorizationError,
    NotFoundError,
    StateConflictError,
)
from services.shop_service.models import (
    AuditEntityType,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Review,
    ReviewStatus,
)
from services.shop_service.schemas import ReviewCreate
from services.shop_service.services.audit import log_audit
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# Only delivered goods can be reviewed
REVIEWABLE_STATUSES = (OrderStatus.SHIPPED, OrderStatus.COMPLETED)


async def _find_purchase(
    db: AsyncSession, auth_id: str, product_id: uuid.UUID
) -> Optional[Order]:
    result = await db.execute(
        select(Order)
        .join(OrderItem, OrderItem.order_id == Order.id)
        .where(
            Order.customer_auth_id == auth_id,
            Order.status.in_(REVIEWABLE_STATUSES),
            OrderItem.product_id == product_id,
        )
        .order_by(Order.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def create_review(
    db: AsyncSession, data: ReviewCreate, user: AuthUser
) -> Review:
    product = await db.get(Product, data.product_id)
    if product is None or product.is_archived:
        raise NotFoundError("Product not found")

    existing = await db.execute(
        select(Review.id).where(
            Review.customer_auth_id == user.user_id,
            Review.product_id == data.product_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise StateConflictError("You have already reviewed this product")

    order = await _find_purchase(db, user.user_id, data.product_id)
    if order is None:
        raise AuthorizationError(
            "Only customers who received this product can review it"
        )

    review = Review(
        product_id=data.product_id,
        customer_auth_id=user.user_id,
        user_name=user.name or order.customer_name,
        rating=data.rating,
        text=data.text,
        status=ReviewStatus.PENDING,
    )
    db.add(review)
    await db.commit()
    logger.info("Review submitted for product %s by %s", product.id, user.user_id)
    return review


async def list_product_reviews(db: AsyncSession, slug: str) -> list[Review]:
    """Approved reviews of a listed product, newest first."""
    result = await db.execute(
        select(Product.id).where(Product.slug == slug, Product.is_archived.is_(False))
    )
    product_id = result.scalar_one_or_none()
    if product_id is None:
        raise NotFoundError("Product not found")

    result = await db.execute(
        select(Review)
        .where(Review.product_id == product_id, Review.status == ReviewStatus.APPROVED)
        .order_by(Review.created_at.desc())
    )
    return list(result.scalars().all())


# ============================================================================
# ADMIN
# ============================================================================


async def list_reviews(
    db: AsyncSession,
    *,
    status: Optional[ReviewStatus] = None,
    product_id: Optional[uuid.UUID] = None,
) -> list[Review]:
    query = select(Review).order_by(Review.created_at.desc())
    if status is not None:
        query = query.where(Review.status == status)
    if product_id is not None:
        query = query.where(Review.product_id == product_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_review(db: AsyncSession, review_id: uuid.UUID) -> Review:
    review = await db.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")
    return review


async def recompute_product_rating(
    db: AsyncSession, product_id: uuid.UUID
) -> Decimal:
    """Set the product rating to the mean of its approved reviews (0 with none).

    Flushes first so pending review changes are counted; does not commit.
    """
    await db.flush()
    result = await db.execute(
        select(func.avg(Review.rating)).where(
            Review.product_id == product_id,
            Review.status == ReviewStatus.APPROVED,
        )
    )
    average = result.scalar_one_or_none()
    rating = (
        Decimal(str(average)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if average is not None
        else Decimal("0")
    )

    product = await db.get(Product, product_id)
    if product is not None:
        product.rating = rating
    return rating


async def set_review_status(
    db: AsyncSession,
    review_id: uuid.UUID,
    new_status: ReviewStatus,
    *,
    performed_by: str,
) -> Review:
    review = await get_review(db, review_id)
    old_status = review.status
    review.status = new_status

    rating = await recompute_product_rating(db, review.product_id)
    log_audit(
        db,
        AuditEntityType.REVIEW,
        review.id,
        "status_changed",
        performed_by,
        old_value={"status": old_status.value},
        new_value={"status": new_status.value},
    )
    await db.commit()
    logger.info(
        "Review %s %s -> %s by %s (product rating %s)",
        review.id,
        old_status.value,
        new_status.value,
        performed_by,
        rating,
    )
    return review


async def delete_review(
    db: AsyncSession, review_id: uuid.UUID, *, performed_by: str
) -> None:
    review = await get_review(db, review_id)
    product_id = review.product_id

    log_audit(
        db,
        AuditEntityType.REVIEW,
        review.id,
        "deleted",
        performed_by,
        old_value={"rating": review.rating, "status": review.status.value},
    )
    await db.delete(review)
    await recompute_product_rating(db, product_id)
    await db.commit()
