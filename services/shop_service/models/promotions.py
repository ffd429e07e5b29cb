"""Shop promotion models: coupons, gift cards, price alerts."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import AwareDateTime
from services.shop_service.models.enums import (
    DiscountType,
    GiftCardStatus,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint, Column
from sqlalchemy import Enum as SAEnum
from sqlalchemy import (
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# COUPONS
# ============================================================================

coupon_products = Table(
    "shop_coupon_products",
    Base.metadata,
    Column(
        "coupon_id",
        Uuid,
        ForeignKey("shop_coupons.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "product_id",
        Uuid,
        ForeignKey("shop_products.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Coupon(Base):
    """Discount codes. Codes are stored upper-cased and trimmed."""

    __tablename__ = "shop_coupons"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    discount_type: Mapped[DiscountType] = mapped_column(
        SAEnum(
            DiscountType,
            values_callable=enum_values,
            name="shop_discount_type_enum",
        ),
        nullable=False,
    )
    # Percent for PERCENTAGE, forints for FIXED
    value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    minimum_cart_total: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    maximum_discount: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    expires_at: Mapped[Optional[datetime]] = mapped_column(
        AwareDateTime(), nullable=True
    )
    usage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )

    # Restrictions (empty = whole cart)
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("shop_categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        AwareDateTime(), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("value > 0", name="coupon_value_positive"),
        CheckConstraint("usage_count >= 0", name="coupon_usage_non_negative"),
    )

    products = relationship("Product", secondary=coupon_products, lazy="selectin")

    @property
    def product_ids(self) -> list[uuid.UUID]:
        return [p.id for p in self.products]

    def __repr__(self):
        return f"<Coupon {self.code}>"


# ============================================================================
# GIFT CARDS
# ============================================================================


class GiftCard(Base):
    """Prepaid gift cards, redeemed against orders until the balance is spent."""

    __tablename__ = "shop_gift_cards"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )

    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[GiftCardStatus] = mapped_column(
        SAEnum(
            GiftCardStatus,
            values_callable=enum_values,
            name="shop_gift_card_status_enum",
        ),
        default=GiftCardStatus.PENDING,
        server_default="pending",
    )

    purchaser_auth_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    purchaser_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sender_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    recipient_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    expires_at: Mapped[datetime] = mapped_column(AwareDateTime(), nullable=False)
    activated_at: Mapped[Optional[datetime]] = mapped_column(
        AwareDateTime(), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        AwareDateTime(), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="gift_card_amount_positive"),
        CheckConstraint(
            "balance >= 0 AND balance <= amount", name="gift_card_balance_range"
        ),
    )

    redemptions = relationship(
        "GiftCardRedemption",
        back_populates="gift_card",
        order_by="GiftCardRedemption.created_at",
    )

    def __repr__(self):
        return f"<GiftCard {self.code} balance={self.balance}>"


class GiftCardRedemption(Base):
    """Append-only record of each amount taken off a gift card."""

    __tablename__ = "shop_gift_card_redemptions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    gift_card_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("shop_gift_cards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("shop_orders.id", ondelete="SET NULL"), nullable=True
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_before: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)

    __table_args__ = (
        CheckConstraint("amount > 0", name="gift_card_redemption_positive"),
    )

    gift_card = relationship("GiftCard", back_populates="redemptions")

    def __repr__(self):
        return f"<GiftCardRedemption {self.amount}>"


# ============================================================================
# PRICE ALERTS
# ============================================================================


class PriceAlert(Base):
    """Customer request to be emailed when a product drops to a target price."""

    __tablename__ = "shop_price_alerts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_auth_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("shop_products.id", ondelete="CASCADE"),
        nullable=False,
    )
    target_price: Mapped[int] = mapped_column(Integer, nullable=False)

    triggered: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    notified_at: Mapped[Optional[datetime]] = mapped_column(
        AwareDateTime(), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)

    __table_args__ = (
        UniqueConstraint("email", "product_id", name="uq_price_alert_email_product"),
    )

    product = relationship("Product", lazy="joined")

    def __repr__(self):
        return f"<PriceAlert {self.email} <= {self.target_price}>"
