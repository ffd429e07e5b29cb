"""Catalog lookups, price resolution and admin product management."""

import uuid
from datetime import datetime
from typing import Iterable, Optional

from libs.common.datetime_utils import as_utc, utc_now
from libs.common.logging import get_logger
from services.shop_service.errors import NotFoundError, ValidationError
from services.shop_service.models import (
    AuditEntityType,
    Category,
    InventoryReason,
    Product,
    ProductVariant,
)
from services.shop_service.schemas import (
    CategoryCreate,
    ProductCreate,
    ProductUpdate,
    ProductVariantCreate,
)
from services.shop_service.services.audit import log_audit
from services.shop_service.services.inventory import log_inventory_change
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

# Fields whose edits are written to the audit log
AUDITED_PRODUCT_FIELDS = (
    "price",
    "sale_price",
    "sale_start_date",
    "sale_end_date",
)


# ============================================================================
# PRICE RESOLUTION
# ============================================================================


def is_sale_active(
    sale_price: Optional[int],
    start: Optional[datetime],
    end: Optional[datetime],
    now: datetime,
) -> bool:
    """A sale applies when a sale price is set and ``now`` is in [start, end]."""
    if sale_price is None:
        return False
    if start is not None and now < as_utc(start):
        return False
    if end is not None and now > as_utc(end):
        return False
    return True


def resolve_unit_price(
    product: Product,
    variant: Optional[ProductVariant] = None,
    now: Optional[datetime] = None,
) -> int:
    now = now or utc_now()
    if variant is not None:
        if is_sale_active(
            variant.sale_price, variant.sale_start_date, variant.sale_end_date, now
        ):
            return variant.sale_price
        if variant.price_override is not None:
            return variant.price_override
    if is_sale_active(
        product.sale_price, product.sale_start_date, product.sale_end_date, now
    ):
        return product.sale_price
    return product.price


def available_stock(row) -> int:
    return row.stock - row.reserved


# ============================================================================
# LOOKUPS
# ============================================================================


async def find_product(db: AsyncSession, product_id: uuid.UUID) -> Optional[Product]:
    result = await db.execute(select(Product).where(Product.id == product_id))
    return result.scalar_one_or_none()


async def find_variant(
    db: AsyncSession, variant_id: uuid.UUID
) -> Optional[ProductVariant]:
    result = await db.execute(
        select(ProductVariant).where(ProductVariant.id == variant_id)
    )
    return result.scalar_one_or_none()


async def load_catalog(
    db: AsyncSession,
    product_ids: Iterable[uuid.UUID],
    variant_ids: Iterable[uuid.UUID],
    *,
    for_update: bool = False,
) -> tuple[dict[uuid.UUID, Product], dict[uuid.UUID, ProductVariant]]:
    """Load the rows a cart references, one query per table."""
    product_ids = set(product_ids)
    variant_ids = {v for v in variant_ids if v is not None}

    products: dict[uuid.UUID, Product] = {}
    variants: dict[uuid.UUID, ProductVariant] = {}

    if product_ids:
        query = select(Product).where(Product.id.in_(product_ids))
        if for_update:
            query = query.with_for_update().execution_options(
                populate_existing=True
            )
        result = await db.execute(query)
        products = {p.id: p for p in result.scalars().all()}

    if variant_ids:
        query = select(ProductVariant).where(ProductVariant.id.in_(variant_ids))
        if for_update:
            query = query.with_for_update().execution_options(
                populate_existing=True
            )
        result = await db.execute(query)
        variants = {v.id: v for v in result.scalars().all()}

    return products, variants


async def list_products(
    db: AsyncSession,
    *,
    category_slug: Optional[str] = None,
    include_archived: bool = False,
    skip: int = 0,
    limit: int = 50,
) -> list[Product]:
    query = select(Product)
    if not include_archived:
        query = query.where(Product.is_archived.is_(False))
    if category_slug:
        query = query.join(Category).where(Category.slug == category_slug)
    query = query.order_by(Product.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_product_by_slug(db: AsyncSession, slug: str) -> Product:
    result = await db.execute(
        select(Product)
        .where(Product.slug == slug, Product.is_archived.is_(False))
        .options(selectinload(Product.variants))
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found")
    return product


# ============================================================================
# ADMIN
# ============================================================================


async def create_category(db: AsyncSession, data: CategoryCreate) -> Category:
    existing = await db.execute(select(Category).where(Category.slug == data.slug))
    if existing.scalar_one_or_none():
        raise ValidationError("Category slug already exists")

    category = Category(**data.model_dump())
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


async def list_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(select(Category).order_by(Category.name))
    return list(result.scalars().all())


async def create_product(
    db: AsyncSession, data: ProductCreate, *, performed_by: str
) -> Product:
    existing = await db.execute(select(Product).where(Product.slug == data.slug))
    if existing.scalar_one_or_none():
        raise ValidationError("Product slug already exists")

    product = Product(**data.model_dump(exclude={"stock"}), stock=0, reserved=0)
    db.add(product)
    await db.flush()

    if data.stock:
        await log_inventory_change(
            db,
            product_id=product.id,
            variant_id=None,
            change=data.stock,
            reason=InventoryReason.RESTOCK,
            user_id=performed_by,
            row=product,
        )

    log_audit(
        db,
        AuditEntityType.PRODUCT,
        product.id,
        "created",
        performed_by,
        new_value={"price": product.price, "stock": data.stock},
    )
    await db.commit()
    await db.refresh(product)
    logger.info("Product %s created by %s", product.slug, performed_by)
    return product


async def update_product(
    db: AsyncSession,
    product_id: uuid.UUID,
    data: ProductUpdate,
    *,
    performed_by: str,
) -> Product:
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found")

    updates = data.model_dump(exclude_unset=True)
    if "slug" in updates and updates["slug"] != product.slug:
        clash = await db.execute(
            select(Product).where(Product.slug == updates["slug"])
        )
        if clash.scalar_one_or_none():
            raise ValidationError("Product slug already exists")

    old_values = {
        field: getattr(product, field)
        for field in AUDITED_PRODUCT_FIELDS
        if field in updates and updates[field] != getattr(product, field)
    }

    for field, value in updates.items():
        setattr(product, field, value)

    if old_values:
        log_audit(
            db,
            AuditEntityType.PRODUCT,
            product.id,
            "price_changed",
            performed_by,
            old_value={k: _jsonable(v) for k, v in old_values.items()},
            new_value={k: _jsonable(updates[k]) for k in old_values},
        )

    await db.commit()
    await db.refresh(product)
    return product


async def archive_product(
    db: AsyncSession, product_id: uuid.UUID, *, performed_by: str
) -> Product:
    """Soft-delete; archived products stay referenced by historical orders."""
    product = await find_product(db, product_id)
    if not product:
        raise NotFoundError("Product not found")
    if not product.is_archived:
        product.is_archived = True
        log_audit(db, AuditEntityType.PRODUCT, product.id, "archived", performed_by)
        await db.commit()
        await db.refresh(product)
    return product


async def create_variant(
    db: AsyncSession,
    product_id: uuid.UUID,
    data: ProductVariantCreate,
    *,
    performed_by: str,
) -> ProductVariant:
    product = await find_product(db, product_id)
    if not product:
        raise NotFoundError("Product not found")

    existing = await db.execute(
        select(ProductVariant).where(ProductVariant.sku == data.sku)
    )
    if existing.scalar_one_or_none():
        raise ValidationError("SKU already exists")

    variant = ProductVariant(
        product_id=product_id,
        **data.model_dump(exclude={"stock"}),
        stock=0,
        reserved=0,
    )
    db.add(variant)
    await db.flush()

    if data.stock:
        await log_inventory_change(
            db,
            product_id=product_id,
            variant_id=variant.id,
            change=data.stock,
            reason=InventoryReason.RESTOCK,
            user_id=performed_by,
            row=variant,
        )

    log_audit(
        db,
        AuditEntityType.VARIANT,
        variant.id,
        "created",
        performed_by,
        new_value={"sku": variant.sku, "stock": data.stock},
    )
    await db.commit()
    await db.refresh(variant)
    return variant


def _jsonable(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return value
