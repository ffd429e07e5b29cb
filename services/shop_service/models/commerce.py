"""Shop commerce models: customers, orders, settings, audit and webhook logs."""

import random
import string
import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import AwareDateTime, JSONType
from services.shop_service.models.enums import (
    AuditEntityType,
    OrderStatus,
    PaymentMethod,
    enum_values,
)
from sqlalchemy import Boolean, CheckConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# CUSTOMER MODEL
# ============================================================================


class Customer(Base):
    """Shop-side customer record keyed by the auth provider's user id."""

    __tablename__ = "shop_customers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    auth_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Lifetime spend on paid orders, drives the loyalty tier
    total_spent: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        AwareDateTime(), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<Customer {self.auth_id} spent={self.total_spent}>"


# ============================================================================
# ORDER MODELS
# ============================================================================


class Order(Base):
    """Orders. Totals are computed once at creation and never recomputed."""

    __tablename__ = "shop_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )

    # Customer
    customer_auth_id: Mapped[Optional[str]] = mapped_column(
        String(255), index=True, nullable=True
    )
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_address: Mapped[str] = mapped_column(Text, nullable=False)
    billing_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    billing_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tax_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Pricing (whole forints)
    subtotal: Mapped[int] = mapped_column(Integer, nullable=False)
    coupon_discount: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0"
    )
    loyalty_discount: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0"
    )
    shipping_cost: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)

    coupon_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            values_callable=enum_values,
            name="shop_order_status_enum",
        ),
        default=OrderStatus.PENDING,
        server_default="pending",
        index=True,
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(
            PaymentMethod,
            values_callable=enum_values,
            name="shop_payment_method_enum",
        ),
        nullable=False,
    )

    # Gateway payment intent id
    payment_reference: Mapped[Optional[str]] = mapped_column(
        String(100), index=True, nullable=True
    )

    cancel_reason: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(AwareDateTime(), nullable=True)
    shipped_at: Mapped[Optional[datetime]] = mapped_column(
        AwareDateTime(), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        AwareDateTime(), nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        AwareDateTime(), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        AwareDateTime(), default=utc_now, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        AwareDateTime(), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("total_price >= 0", name="order_total_non_negative"),
    )

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def discount_total(self) -> int:
        return self.coupon_discount + self.loyalty_discount

    @staticmethod
    def generate_order_number() -> str:
        """Generate a unique order number like NX-20260104-A1B2C."""
        date_part = utc_now().strftime("%Y%m%d")
        random_part = "".join(
            random.choices(string.ascii_uppercase + string.digits, k=5)
        )
        return f"NX-{date_part}-{random_part}"

    def __repr__(self):
        return f"<Order {self.order_number} status={self.status}>"


class OrderItem(Base):
    """Order line items (snapshot at order time)."""

    __tablename__ = "shop_order_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("shop_orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shop_products.id"), nullable=False
    )
    variant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("shop_product_variants.id"), nullable=True
    )

    # Snapshot at order time (products may change)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit_price: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    line_total: Mapped[int] = mapped_column(Integer, nullable=False)
    selected_options: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)

    __table_args__ = (CheckConstraint("quantity > 0", name="order_item_positive_qty"),)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.name} qty={self.quantity}>"


# ============================================================================
# WEBHOOK EVENT LOG
# ============================================================================


class WebhookEvent(Base):
    """Gateway events seen by the webhook endpoint, used for replay detection."""

    __tablename__ = "shop_webhook_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    provider: Mapped[str] = mapped_column(String(30), nullable=False)
    event_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    payload: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    processed: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    retry_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    received_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        AwareDateTime(), nullable=True
    )

    def __repr__(self):
        return f"<WebhookEvent {self.event_id} processed={self.processed}>"


# ============================================================================
# SETTINGS + AUDIT
# ============================================================================


class StoreSetting(Base):
    """Key/value site settings edited from the admin console."""

    __tablename__ = "shop_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        AwareDateTime(), default=utc_now, onupdate=utc_now
    )


class StoreAuditLog(Base):
    """Audit log for sensitive shop operations."""

    __tablename__ = "shop_audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    entity_type: Mapped[AuditEntityType] = mapped_column(
        SAEnum(
            AuditEntityType,
            values_callable=enum_values,
            name="shop_audit_entity_type_enum",
        ),
        nullable=False,
    )
    entity_id: Mapped[str] = mapped_column(String(255), nullable=False)

    action: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # e.g., "price_changed", "status_changed"

    old_value: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    new_value: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    performed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    performed_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_shop_audit_logs_entity", "entity_type", "entity_id"),
    )

    def __repr__(self):
        return f"<StoreAuditLog {self.entity_type}:{self.entity_id} {self.action}>"


class SettingAudit(Base):
    """One row per changed setting key."""

    __tablename__ = "shop_setting_audits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    key: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    old_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_value: Mapped[str] = mapped_column(Text, nullable=False)
    changed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)

    def __repr__(self):
        return f"<SettingAudit {self.key}: {self.old_value} -> {self.new_value}>"
