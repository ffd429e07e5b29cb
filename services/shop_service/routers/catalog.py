"""Shop catalog router: categories and products."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.db.session import get_async_db
from services.shop_service.routers._helpers import product_detail, product_response
from services.shop_service.schemas import (
    CategoryResponse,
    ProductDetail,
    ProductResponse,
)
from services.shop_service.services import catalog as catalog_service
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["shop"])


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_async_db)):
    return await catalog_service.list_categories(db)


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    category: Optional[str] = Query(None, description="Category slug"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """List products that are for sale."""
    products = await catalog_service.list_products(
        db, category_slug=category, skip=skip, limit=limit
    )
    return [product_response(p) for p in products]


@router.get("/products/{slug}", response_model=ProductDetail)
async def get_product(slug: str, db: AsyncSession = Depends(get_async_db)):
    product = await catalog_service.get_product_by_slug(db, slug)
    return product_detail(product)
