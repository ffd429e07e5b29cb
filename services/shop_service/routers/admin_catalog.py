"""Admin catalog router: categories, products, variants."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.shop_service.routers._helpers import (
    product_response,
    variant_response,
)
from services.shop_service.schemas import (
    CategoryCreate,
    CategoryResponse,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    ProductVariantCreate,
    ProductVariantResponse,
)
from services.shop_service.services import catalog as catalog_service
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-shop"])


# ============================================================================
# CATEGORIES
# ============================================================================


@router.post(
    "/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    category_in: CategoryCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog_service.create_category(db, category_in)


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog_service.list_categories(db)


# ============================================================================
# PRODUCTS
# ============================================================================


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    include_archived: bool = True,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    products = await catalog_service.list_products(
        db, include_archived=include_archived, skip=skip, limit=limit
    )
    return [product_response(p) for p in products]


@router.post(
    "/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED
)
async def create_product(
    product_in: ProductCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a product; opening stock is posted to the ledger as RESTOCK."""
    product = await catalog_service.create_product(
        db, product_in, performed_by=current_user.user_id
    )
    return product_response(product)


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    product_in: ProductUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update product fields. Stock changes go through inventory adjustments."""
    product = await catalog_service.update_product(
        db, product_id, product_in, performed_by=current_user.user_id
    )
    return product_response(product)


@router.delete("/products/{product_id}", response_model=ProductResponse)
async def archive_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Archive a product. Products are never hard-deleted."""
    product = await catalog_service.archive_product(
        db, product_id, performed_by=current_user.user_id
    )
    return product_response(product)


# ============================================================================
# VARIANTS
# ============================================================================


@router.post(
    "/products/{product_id}/variants",
    response_model=ProductVariantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_variant(
    product_id: uuid.UUID,
    variant_in: ProductVariantCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    variant = await catalog_service.create_variant(
        db, product_id, variant_in, performed_by=current_user.user_id
    )
    product = await catalog_service.find_product(db, product_id)
    return variant_response(product, variant)
