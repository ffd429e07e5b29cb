"""Admin inventory router: stock adjustments and the ledger."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.shop_service.schemas import (
    InventoryAdjustment,
    InventoryLogResponse,
    StockLevelResponse,
)
from services.shop_service.services import inventory as inventory_service
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/inventory", tags=["admin-shop"])


@router.post("/adjust", response_model=StockLevelResponse)
async def adjust_inventory(
    adjustment: InventoryAdjustment,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Restock or correct stock. Every change is written to the ledger."""
    row = await inventory_service.adjust_stock(
        db,
        product_id=adjustment.product_id,
        variant_id=adjustment.variant_id,
        change=adjustment.change,
        reason=adjustment.reason,
        user_id=current_user.user_id,
    )
    return StockLevelResponse(
        product_id=adjustment.product_id,
        variant_id=adjustment.variant_id,
        stock=row.stock,
        reserved=row.reserved,
        available_stock=row.available_stock,
    )


@router.get("/{product_id}/logs", response_model=list[InventoryLogResponse])
async def list_inventory_logs(
    product_id: uuid.UUID,
    limit: int = Query(100, ge=1, le=500),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await inventory_service.get_inventory_logs(db, product_id, limit=limit)


@router.get("/{product_id}/ledger-total")
async def ledger_total(
    product_id: uuid.UUID,
    variant_id: Optional[uuid.UUID] = None,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Stock as reconstructed from the ledger, for reconciliation."""
    total = await inventory_service.reconstruct_stock(db, product_id, variant_id)
    return {"product_id": product_id, "variant_id": variant_id, "stock": total}
