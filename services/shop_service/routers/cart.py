"""Cart quote and coupon preview router."""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.common.rate_limit import coupon_limit
from libs.db.session import get_async_db
from services.shop_service.routers._helpers import (
    get_pricing_config,
    quote_response,
    to_cart_lines,
)
from services.shop_service.schemas import (
    CartQuoteRequest,
    CartQuoteResponse,
    CouponValidateRequest,
    CouponValidateResponse,
)
from services.shop_service.services.catalog import load_catalog
from services.shop_service.services.coupons import validate_coupon
from services.shop_service.services.pricing import (
    PricingConfig,
    price_lines,
    quote_cart,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["shop"])


@router.post("/cart/quote", response_model=CartQuoteResponse)
async def quote(
    payload: CartQuoteRequest,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    config: PricingConfig = Depends(get_pricing_config),
    db: AsyncSession = Depends(get_async_db),
):
    """Server-side price of a cart, including discounts and shipping."""
    cart_quote = await quote_cart(
        db,
        to_cart_lines(payload.items),
        customer_auth_id=current_user.user_id if current_user else None,
        coupon_code=payload.coupon_code,
        config=config,
    )
    return quote_response(cart_quote)


@router.post("/coupons/validate", response_model=CouponValidateResponse)
@coupon_limit
async def validate(
    request: Request,
    payload: CouponValidateRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Preview a coupon against a cart. Does not consume it."""
    lines = to_cart_lines(payload.items)
    products, variants = await load_catalog(
        db,
        [line.product_id for line in lines],
        [line.variant_id for line in lines],
    )
    priced = price_lines(lines, products, variants)
    subtotal = sum(line.line_total for line in priced)

    coupon, discount = await validate_coupon(db, payload.code, subtotal, priced)
    return CouponValidateResponse(code=coupon.code, discount=discount, subtotal=subtotal)
