"""Customer-facing community models: product reviews and newsletter subscribers."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import AwareDateTime
from services.shop_service.models.enums import ReviewStatus, enum_values
from sqlalchemy import CheckConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

# ============================================================================
# REVIEWS
# ============================================================================


class Review(Base):
    """A customer's rating of a product they received. Shown once approved."""

    __tablename__ = "shop_reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("shop_products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_auth_id: Mapped[str] = mapped_column(String(255), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[ReviewStatus] = mapped_column(
        SAEnum(
            ReviewStatus,
            values_callable=enum_values,
            name="shop_review_status_enum",
        ),
        default=ReviewStatus.PENDING,
        server_default="pending",
    )

    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        AwareDateTime(), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="review_rating_range"),
        UniqueConstraint(
            "customer_auth_id", "product_id", name="uq_review_customer_product"
        ),
    )

    def __repr__(self):
        return f"<Review {self.rating}/5 product={self.product_id}>"


# ============================================================================
# NEWSLETTER
# ============================================================================


class NewsletterSubscriber(Base):
    __tablename__ = "shop_newsletter_subscribers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)

    def __repr__(self):
        return f"<NewsletterSubscriber {self.email}>"
