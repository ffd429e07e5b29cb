"""Inventory ledger: every real stock movement is an InventoryLog row.

The ``stock`` column on products and variants is a denormalized running total
of the ledger. Soft holds for pending orders live in ``reserved`` and never
touch the ledger.
"""

import uuid
from typing import Optional, Union

from libs.common.logging import get_logger
from services.shop_service.errors import NotFoundError, ValidationError
from services.shop_service.models import (
    InventoryLog,
    InventoryReason,
    Product,
    ProductVariant,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

StockRow = Union[Product, ProductVariant]


async def _load_stock_row(
    db: AsyncSession,
    product_id: uuid.UUID,
    variant_id: Optional[uuid.UUID],
    *,
    for_update: bool = False,
) -> StockRow:
    if variant_id is not None:
        query = select(ProductVariant).where(
            ProductVariant.id == variant_id,
            ProductVariant.product_id == product_id,
        )
    else:
        query = select(Product).where(Product.id == product_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)

    result = await db.execute(query)
    row = result.scalar_one_or_none()
    if row is None:
        raise NotFoundError("Variant not found" if variant_id else "Product not found")
    return row


async def log_inventory_change(
    db: AsyncSession,
    *,
    product_id: uuid.UUID,
    variant_id: Optional[uuid.UUID],
    change: int,
    reason: InventoryReason,
    reference_id: Optional[str] = None,
    user_id: Optional[str] = None,
    row: Optional[StockRow] = None,
) -> InventoryLog:
    """Append a ledger entry and apply the same delta to the stock counter.

    Runs inside the caller's transaction; does not commit. Pass ``row`` when
    the caller already holds the locked product/variant.
    """
    if row is None:
        row = await _load_stock_row(db, product_id, variant_id, for_update=True)

    entry = InventoryLog(
        product_id=product_id,
        variant_id=variant_id,
        change=change,
        reason=reason,
        reference_id=reference_id,
        user_id=user_id,
    )
    db.add(entry)
    row.stock += change
    return entry


async def adjust_stock(
    db: AsyncSession,
    *,
    product_id: uuid.UUID,
    variant_id: Optional[uuid.UUID],
    change: int,
    reason: InventoryReason,
    user_id: str,
) -> StockRow:
    """Admin restock or correction. Commits."""
    if change == 0:
        raise ValidationError("Stock change must not be zero")

    row = await _load_stock_row(db, product_id, variant_id, for_update=True)
    new_stock = row.stock + change
    if new_stock < 0:
        raise ValidationError("Cannot reduce stock below 0")
    if new_stock < row.reserved:
        raise ValidationError(
            f"Cannot reduce below reserved quantity ({row.reserved})"
        )

    await log_inventory_change(
        db,
        product_id=product_id,
        variant_id=variant_id,
        change=change,
        reason=reason,
        user_id=user_id,
        row=row,
    )
    await db.commit()
    await db.refresh(row)

    logger.info(
        "Stock adjusted product=%s variant=%s change=%+d stock=%d by %s",
        product_id,
        variant_id,
        change,
        row.stock,
        user_id,
    )
    return row


async def get_inventory_logs(
    db: AsyncSession,
    product_id: uuid.UUID,
    *,
    limit: int = 100,
) -> list[InventoryLog]:
    result = await db.execute(
        select(InventoryLog)
        .where(InventoryLog.product_id == product_id)
        .order_by(InventoryLog.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def reconstruct_stock(
    db: AsyncSession,
    product_id: uuid.UUID,
    variant_id: Optional[uuid.UUID] = None,
) -> int:
    """Sum of ledger changes for a product (or one of its variants)."""
    query = select(func.coalesce(func.sum(InventoryLog.change), 0)).where(
        InventoryLog.product_id == product_id
    )
    if variant_id is not None:
        query = query.where(InventoryLog.variant_id == variant_id)
    else:
        query = query.where(InventoryLog.variant_id.is_(None))
    result = await db.execute(query)
    return int(result.scalar_one())
