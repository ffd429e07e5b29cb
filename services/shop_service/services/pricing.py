"""Cart pricing pipeline.

Order of application is fixed: subtotal, coupon discount, loyalty discount on
what the coupon leaves, then shipping. The server always re-prices; a total
sent by the client is never used.
"""

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from libs.common.datetime_utils import utc_now
from services.shop_service.errors import StockError
from services.shop_service.models import Coupon, Customer, Product, ProductVariant
from services.shop_service.services.catalog import (
    available_stock,
    load_catalog,
    resolve_unit_price,
)
from services.shop_service.services.coupons import (
    applicable_subtotal,
    check_coupon,
    compute_discount,
    get_coupon_by_code,
    normalize_code,
)
from services.shop_service.services.loyalty import (
    DEFAULT_LOYALTY_TIERS,
    LoyaltyTier,
    loyalty_discount,
    tier_for,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class CartLine:
    product_id: uuid.UUID
    quantity: int
    variant_id: Optional[uuid.UUID] = None
    selected_options: dict = field(default_factory=dict)


@dataclass(frozen=True)
class PricingConfig:
    shipping_fee: int = 2990
    free_shipping_threshold: int = 20000
    loyalty_tiers: tuple[LoyaltyTier, ...] = DEFAULT_LOYALTY_TIERS


@dataclass
class PricedLine:
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID]
    name: str
    unit_price: int
    quantity: int
    line_total: int
    category_id: Optional[uuid.UUID] = None
    selected_options: dict = field(default_factory=dict)


@dataclass
class CartQuote:
    subtotal: int
    coupon_code: Optional[str]
    coupon_discount: int
    loyalty_tier: Optional[str]
    loyalty_discount: int
    discount: int
    shipping_cost: int
    total: int
    lines: list[PricedLine]


def _line_name(product: Product, variant: Optional[ProductVariant]) -> str:
    if variant is not None and variant.name:
        return f"{product.name} - {variant.name}"
    return product.name


def price_lines(
    lines: Sequence[CartLine],
    products: dict[uuid.UUID, Product],
    variants: dict[uuid.UUID, ProductVariant],
    now: Optional[datetime] = None,
) -> list[PricedLine]:
    """Resolve unit prices and check stock for every cart line."""
    now = now or utc_now()
    priced: list[PricedLine] = []

    # The same product or variant may appear on several lines (different options)
    requested: dict[tuple, int] = defaultdict(int)
    for line in lines:
        requested[(line.product_id, line.variant_id)] += line.quantity

    for line in lines:
        product = products.get(line.product_id)
        if product is None or product.is_archived:
            raise StockError(f"Product {line.product_id} is not available")

        variant = None
        if line.variant_id is not None:
            variant = variants.get(line.variant_id)
            if variant is None or variant.product_id != product.id:
                raise StockError(f"Variant {line.variant_id} is not available")

        stock_row = variant if variant is not None else product
        if requested[(line.product_id, line.variant_id)] > available_stock(stock_row):
            raise StockError(
                f"Only {max(available_stock(stock_row), 0)} available for "
                f"{_line_name(product, variant)}"
            )

        unit_price = resolve_unit_price(product, variant, now)
        priced.append(
            PricedLine(
                product_id=product.id,
                variant_id=line.variant_id,
                name=_line_name(product, variant),
                unit_price=unit_price,
                quantity=line.quantity,
                line_total=unit_price * line.quantity,
                category_id=product.category_id,
                selected_options=dict(line.selected_options or {}),
            )
        )

    return priced


def calculate_quote(
    lines: Sequence[CartLine],
    products: dict[uuid.UUID, Product],
    variants: dict[uuid.UUID, ProductVariant],
    *,
    coupon: Optional[Coupon] = None,
    coupon_code: Optional[str] = None,
    total_spent: Optional[int] = None,
    config: PricingConfig = PricingConfig(),
    now: Optional[datetime] = None,
) -> CartQuote:
    """Price a cart. ``total_spent`` is None for guests (no loyalty discount)."""
    now = now or utc_now()
    priced = price_lines(lines, products, variants, now)
    subtotal = sum(line.line_total for line in priced)

    coupon_discount = 0
    applied_code = None
    if coupon_code is not None or coupon is not None:
        check_coupon(coupon, subtotal, priced, now)
        coupon_discount = compute_discount(coupon, applicable_subtotal(coupon, priced))
        applied_code = coupon.code

    tier_name = None
    loyalty_amount = 0
    if total_spent is not None:
        tier_name = tier_for(total_spent, config.loyalty_tiers).name
        loyalty_amount = loyalty_discount(
            subtotal - coupon_discount, total_spent, config.loyalty_tiers
        )

    shipping = (
        0 if subtotal >= config.free_shipping_threshold else config.shipping_fee
    )
    discount = coupon_discount + loyalty_amount
    total = max(0, subtotal - discount) + shipping

    return CartQuote(
        subtotal=subtotal,
        coupon_code=applied_code,
        coupon_discount=coupon_discount,
        loyalty_tier=tier_name,
        loyalty_discount=loyalty_amount,
        discount=discount,
        shipping_cost=shipping,
        total=total,
        lines=priced,
    )


async def get_total_spent(db: AsyncSession, auth_id: str) -> int:
    result = await db.execute(
        select(Customer.total_spent).where(Customer.auth_id == auth_id)
    )
    return result.scalar_one_or_none() or 0


async def quote_cart(
    db: AsyncSession,
    lines: Sequence[CartLine],
    *,
    customer_auth_id: Optional[str] = None,
    coupon_code: Optional[str] = None,
    config: PricingConfig = PricingConfig(),
    for_update: bool = False,
) -> CartQuote:
    """Load everything the cart references and price it. No writes."""
    products, variants = await load_catalog(
        db,
        [line.product_id for line in lines],
        [line.variant_id for line in lines],
        for_update=for_update,
    )

    coupon = None
    if coupon_code:
        coupon_code = normalize_code(coupon_code)
        coupon = await get_coupon_by_code(db, coupon_code)
    else:
        coupon_code = None

    total_spent = None
    if customer_auth_id:
        total_spent = await get_total_spent(db, customer_auth_id)

    return calculate_quote(
        lines,
        products,
        variants,
        coupon=coupon,
        coupon_code=coupon_code,
        total_spent=total_spent,
        config=config,
    )
