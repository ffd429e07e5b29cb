"""Shared helpers for shop routers."""

from datetime import datetime
from typing import Optional

from fastapi import Depends
from libs.common.datetime_utils import utc_now
from libs.db.session import get_async_db
from services.shop_service.models import Product, ProductVariant
from services.shop_service.schemas import (
    CartLineIn,
    CartQuoteResponse,
    PricedLineResponse,
    ProductDetail,
    ProductResponse,
    ProductVariantResponse,
)
from services.shop_service.services.catalog import resolve_unit_price
from services.shop_service.services.pricing import CartLine, CartQuote, PricingConfig
from services.shop_service.services.settings_store import settings_cache
from sqlalchemy.ext.asyncio import AsyncSession


async def get_pricing_config(
    db: AsyncSession = Depends(get_async_db),
) -> PricingConfig:
    """Current shipping settings, served from the settings cache."""
    return await settings_cache.get(db)


def to_cart_lines(items: list[CartLineIn]) -> list[CartLine]:
    return [
        CartLine(
            product_id=item.product_id,
            variant_id=item.variant_id,
            quantity=item.quantity,
            selected_options=item.selected_options,
        )
        for item in items
    ]


def quote_response(quote: CartQuote) -> CartQuoteResponse:
    return CartQuoteResponse(
        subtotal=quote.subtotal,
        coupon_code=quote.coupon_code,
        coupon_discount=quote.coupon_discount,
        loyalty_tier=quote.loyalty_tier,
        loyalty_discount=quote.loyalty_discount,
        discount=quote.discount,
        shipping_cost=quote.shipping_cost,
        total=quote.total,
        lines=[
            PricedLineResponse(
                product_id=line.product_id,
                variant_id=line.variant_id,
                name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                line_total=line.line_total,
            )
            for line in quote.lines
        ],
    )


def product_response(
    product: Product, now: Optional[datetime] = None
) -> ProductResponse:
    resp = ProductResponse.model_validate(product)
    resp.current_price = resolve_unit_price(product, None, now or utc_now())
    return resp


def variant_response(
    product: Product, variant: ProductVariant, now: Optional[datetime] = None
) -> ProductVariantResponse:
    resp = ProductVariantResponse.model_validate(variant)
    resp.current_price = resolve_unit_price(product, variant, now or utc_now())
    return resp


def product_detail(product: Product) -> ProductDetail:
    now = utc_now()
    detail = ProductDetail.model_validate(
        product_response(product, now).model_dump()
    )
    detail.variants = [variant_response(product, v, now) for v in product.variants]
    return detail
