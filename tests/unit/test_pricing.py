"""Unit tests for the cart pricing pipeline (no database)."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from services.shop_service.errors import CouponError, CouponRejection, StockError
from services.shop_service.models import DiscountType
from services.shop_service.services.loyalty import LoyaltyTier
from services.shop_service.services.pricing import (
    CartLine,
    PricingConfig,
    calculate_quote,
)
from tests.factories import CouponFactory, ProductFactory, VariantFactory

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
FLAT_FIVE_PERCENT = (LoyaltyTier("Flat", 0, Decimal("5")),)
FLAT_TEN_PERCENT = (LoyaltyTier("Flat", 0, Decimal("10")),)


def _catalog(*products, variants=()):
    return {p.id: p for p in products}, {v.id: v for v in variants}


# ---------------------------------------------------------------------------
# Order of application
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_coupon_then_loyalty_then_shipping():
    """100 000 Ft, SAVE10 and 5% loyalty: 90 000 after coupon, 85 500 total."""
    product = ProductFactory.create(price=100000, stock=5)
    coupon = CouponFactory.create(code="SAVE10", value=Decimal("10"))
    products, variants = _catalog(product)

    quote = calculate_quote(
        [CartLine(product_id=product.id, quantity=1)],
        products,
        variants,
        coupon=coupon,
        coupon_code="SAVE10",
        total_spent=0,
        config=PricingConfig(loyalty_tiers=FLAT_FIVE_PERCENT),
        now=NOW,
    )

    assert quote.subtotal == 100000
    assert quote.coupon_discount == 10000
    assert quote.loyalty_discount == 4500
    assert quote.discount == 14500
    assert quote.shipping_cost == 0
    assert quote.total == 85500


@pytest.mark.unit
def test_loyalty_is_computed_on_what_the_coupon_leaves():
    """A fixed coupon before a 10% loyalty gives 13 500, not 13 000."""
    product = ProductFactory.create(price=20000, stock=5)
    coupon = CouponFactory.create(
        code="MINUS5K", discount_type=DiscountType.FIXED, value=Decimal("5000")
    )
    products, variants = _catalog(product)

    quote = calculate_quote(
        [CartLine(product_id=product.id, quantity=1)],
        products,
        variants,
        coupon=coupon,
        coupon_code="MINUS5K",
        total_spent=0,
        config=PricingConfig(loyalty_tiers=FLAT_TEN_PERCENT),
        now=NOW,
    )

    assert quote.coupon_discount == 5000
    assert quote.loyalty_discount == 1500
    assert quote.total == 13500


@pytest.mark.unit
def test_free_shipping_threshold_uses_subtotal_before_discounts():
    product = ProductFactory.create(price=20000, stock=5)
    coupon = CouponFactory.create(code="HALF", value=Decimal("50"))
    products, variants = _catalog(product)

    quote = calculate_quote(
        [CartLine(product_id=product.id, quantity=1)],
        products,
        variants,
        coupon=coupon,
        coupon_code="HALF",
        config=PricingConfig(shipping_fee=2990, free_shipping_threshold=20000),
        now=NOW,
    )

    assert quote.shipping_cost == 0
    assert quote.total == 10000


@pytest.mark.unit
def test_shipping_fee_below_threshold():
    product = ProductFactory.create(price=5000, stock=5)
    products, variants = _catalog(product)

    quote = calculate_quote(
        [CartLine(product_id=product.id, quantity=2)],
        products,
        variants,
        config=PricingConfig(shipping_fee=1490, free_shipping_threshold=15000),
        now=NOW,
    )

    assert quote.subtotal == 10000
    assert quote.shipping_cost == 1490
    assert quote.total == 11490


@pytest.mark.unit
def test_guest_gets_no_loyalty_discount():
    product = ProductFactory.create(price=50000, stock=5)
    products, variants = _catalog(product)

    quote = calculate_quote(
        [CartLine(product_id=product.id, quantity=1)],
        products,
        variants,
        total_spent=None,
        config=PricingConfig(loyalty_tiers=FLAT_TEN_PERCENT),
        now=NOW,
    )

    assert quote.loyalty_tier is None
    assert quote.loyalty_discount == 0
    assert quote.total == 50000


@pytest.mark.unit
def test_fixed_coupon_larger_than_cart_never_goes_negative():
    product = ProductFactory.create(price=3000, stock=5)
    coupon = CouponFactory.create(
        code="BIG", discount_type=DiscountType.FIXED, value=Decimal("10000")
    )
    products, variants = _catalog(product)

    quote = calculate_quote(
        [CartLine(product_id=product.id, quantity=1)],
        products,
        variants,
        coupon=coupon,
        coupon_code="BIG",
        config=PricingConfig(shipping_fee=2990, free_shipping_threshold=20000),
        now=NOW,
    )

    assert quote.coupon_discount == 3000
    assert quote.total == 2990


# ---------------------------------------------------------------------------
# Lines and stock
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_variant_price_override_and_line_total():
    product = ProductFactory.create(name="Tee", price=6990, stock=0)
    variant = VariantFactory.create(
        product_id=product.id, name="XL", price_override=7490, stock=3
    )
    products, variants = _catalog(product, variants=[variant])

    quote = calculate_quote(
        [CartLine(product_id=product.id, variant_id=variant.id, quantity=3)],
        products,
        variants,
        now=NOW,
    )

    line = quote.lines[0]
    assert line.name == "Tee - XL"
    assert line.unit_price == 7490
    assert line.line_total == 22470


@pytest.mark.unit
def test_quantity_above_available_stock_is_rejected():
    product = ProductFactory.create(price=1000, stock=5, reserved=3)
    products, variants = _catalog(product)

    with pytest.raises(StockError):
        calculate_quote(
            [CartLine(product_id=product.id, quantity=3)], products, variants, now=NOW
        )


@pytest.mark.unit
def test_split_lines_are_checked_against_stock_together():
    """Two lines of 6 for a product with 10 in stock ask for 12."""
    product = ProductFactory.create(price=1000, stock=10)
    products, variants = _catalog(product)
    lines = [
        CartLine(product_id=product.id, quantity=6, selected_options={"print": "A"}),
        CartLine(product_id=product.id, quantity=6, selected_options={"print": "B"}),
    ]

    with pytest.raises(StockError):
        calculate_quote(lines, products, variants, now=NOW)


@pytest.mark.unit
def test_split_lines_within_stock_are_priced_separately():
    product = ProductFactory.create(price=1000, stock=10)
    variant = VariantFactory.create(product_id=product.id, stock=2)
    products, variants = _catalog(product, variants=[variant])

    quote = calculate_quote(
        [
            CartLine(product_id=product.id, quantity=4),
            CartLine(product_id=product.id, quantity=6),
            CartLine(product_id=product.id, variant_id=variant.id, quantity=2),
        ],
        products,
        variants,
        now=NOW,
    )

    assert [line.quantity for line in quote.lines] == [4, 6, 2]


@pytest.mark.unit
def test_archived_product_is_rejected():
    product = ProductFactory.create(is_archived=True)
    products, variants = _catalog(product)

    with pytest.raises(StockError):
        calculate_quote(
            [CartLine(product_id=product.id, quantity=1)], products, variants, now=NOW
        )


@pytest.mark.unit
def test_variant_of_another_product_is_rejected():
    product = ProductFactory.create()
    other = ProductFactory.create()
    variant = VariantFactory.create(product_id=other.id)
    products, variants = _catalog(product, other, variants=[variant])

    with pytest.raises(StockError):
        calculate_quote(
            [CartLine(product_id=product.id, variant_id=variant.id, quantity=1)],
            products,
            variants,
            now=NOW,
        )


@pytest.mark.unit
def test_unknown_coupon_code_rejects_the_quote():
    product = ProductFactory.create(price=10000)
    products, variants = _catalog(product)

    with pytest.raises(CouponError) as exc:
        calculate_quote(
            [CartLine(product_id=product.id, quantity=1)],
            products,
            variants,
            coupon=None,
            coupon_code="NOPE",
            now=NOW,
        )
    assert exc.value.reason == CouponRejection.NOT_FOUND


@pytest.mark.unit
def test_sale_price_applies_only_inside_window():
    product = ProductFactory.create(
        price=10000,
        sale_price=8000,
        sale_start_date=NOW - timedelta(days=1),
        sale_end_date=NOW + timedelta(days=1),
    )
    products, variants = _catalog(product)
    lines = [CartLine(product_id=product.id, quantity=1)]

    assert calculate_quote(lines, products, variants, now=NOW).subtotal == 8000
    later = NOW + timedelta(days=2)
    assert calculate_quote(lines, products, variants, now=later).subtotal == 10000
