"""Shop catalog models: categories, products, variants."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.types import AwareDateTime, JSONType
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# CATALOG MODELS
# ============================================================================


class Category(Base):
    """Product categories (e.g., 'Headphones', 'Smart Home')."""

    __tablename__ = "shop_categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category {self.name}>"


class Product(Base):
    """Sellable products. Prices are whole forints."""

    __tablename__ = "shop_products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("shop_categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    # Pricing
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    sale_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sale_start_date: Mapped[Optional[datetime]] = mapped_column(
        AwareDateTime(), nullable=True
    )
    sale_end_date: Mapped[Optional[datetime]] = mapped_column(
        AwareDateTime(), nullable=True
    )

    # Stock: denormalized ledger total + soft holds for pending orders
    stock: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    reserved: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    # Soft delete; referenced by historical orders
    is_archived: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    rating: Mapped[Decimal] = mapped_column(
        Numeric(3, 2), default=0, server_default="0"
    )

    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        AwareDateTime(), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="product_price_non_negative"),
        CheckConstraint("reserved >= 0", name="product_reserved_non_negative"),
    )

    category = relationship("Category", back_populates="products")
    variants = relationship(
        "ProductVariant", back_populates="product", cascade="all, delete-orphan"
    )

    @property
    def available_stock(self) -> int:
        return self.stock - self.reserved

    def __repr__(self):
        return f"<Product {self.name}>"


class ProductVariant(Base):
    """Product variants (e.g., 'Earbuds X - Black')."""

    __tablename__ = "shop_product_variants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("shop_products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    sku: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    options: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    # Pricing override (null = use product pricing)
    price_override: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sale_price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sale_start_date: Mapped[Optional[datetime]] = mapped_column(
        AwareDateTime(), nullable=True
    )
    sale_end_date: Mapped[Optional[datetime]] = mapped_column(
        AwareDateTime(), nullable=True
    )

    stock: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    reserved: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        AwareDateTime(), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("reserved >= 0", name="variant_reserved_non_negative"),
    )

    product = relationship("Product", back_populates="variants")

    @property
    def available_stock(self) -> int:
        return self.stock - self.reserved

    def __repr__(self):
        return f"<ProductVariant {self.sku}>"
