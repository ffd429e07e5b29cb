"""Unit tests for coupon checks and discount math."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from services.shop_service.errors import CouponError, CouponRejection
from services.shop_service.models import DiscountType
from services.shop_service.services.coupons import (
    applicable_subtotal,
    check_coupon,
    compute_discount,
    normalize_code,
)
from services.shop_service.services.pricing import PricedLine
from tests.factories import CategoryFactory, CouponFactory, ProductFactory

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _line(product, quantity=1, category_id=None):
    return PricedLine(
        product_id=product.id,
        variant_id=None,
        name=product.name,
        unit_price=product.price,
        quantity=quantity,
        line_total=product.price * quantity,
        category_id=category_id,
    )


def _reason(coupon, cart_total=10000, lines=()):
    with pytest.raises(CouponError) as exc:
        check_coupon(coupon, cart_total, list(lines), NOW)
    return exc.value.reason


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_missing_coupon_is_not_found():
    assert _reason(None) == CouponRejection.NOT_FOUND


@pytest.mark.unit
def test_inactive_coupon():
    assert _reason(CouponFactory.create(is_active=False)) == CouponRejection.INACTIVE


@pytest.mark.unit
def test_expired_coupon():
    coupon = CouponFactory.create(expires_at=NOW - timedelta(minutes=1))
    assert _reason(coupon) == CouponRejection.EXPIRED


@pytest.mark.unit
def test_usage_limit_reached():
    """usage_limit=1 with one use already recorded is exhausted."""
    coupon = CouponFactory.create(usage_limit=1, usage_count=1)
    assert _reason(coupon) == CouponRejection.USAGE_EXCEEDED


@pytest.mark.unit
def test_minimum_cart_total_not_met():
    coupon = CouponFactory.create(minimum_cart_total=15000)
    assert _reason(coupon, cart_total=14999) == CouponRejection.MINIMUM_NOT_MET


@pytest.mark.unit
def test_category_coupon_without_matching_line():
    category = CategoryFactory.create()
    product = ProductFactory.create()
    coupon = CouponFactory.create(category_id=category.id)

    reason = _reason(coupon, lines=[_line(product)])
    assert reason == CouponRejection.NOT_APPLICABLE


@pytest.mark.unit
def test_inactive_is_reported_before_expired():
    coupon = CouponFactory.create(
        is_active=False, expires_at=NOW - timedelta(days=1)
    )
    assert _reason(coupon) == CouponRejection.INACTIVE


@pytest.mark.unit
def test_valid_coupon_passes():
    coupon = CouponFactory.create(
        usage_limit=5,
        usage_count=4,
        minimum_cart_total=10000,
        expires_at=NOW + timedelta(days=1),
    )
    assert check_coupon(coupon, 10000, [], NOW) is coupon


@pytest.mark.unit
def test_not_found_maps_to_404_others_to_400():
    not_found = CouponError(CouponRejection.NOT_FOUND, "nope")
    expired = CouponError(CouponRejection.EXPIRED, "old")
    assert not_found.status_code == 404
    assert expired.status_code == 400
    assert expired.code == "coupon_expired"


# ---------------------------------------------------------------------------
# Discounts
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_percentage_rounds_half_up():
    """12.5% of 9 996 is 1 249.5, which rounds to 1 250."""
    coupon = CouponFactory.create(value=Decimal("12.5"))
    assert compute_discount(coupon, 9996) == 1250


@pytest.mark.unit
def test_percentage_is_capped_by_maximum_discount():
    coupon = CouponFactory.create(value=Decimal("20"), maximum_discount=3000)
    assert compute_discount(coupon, 50000) == 3000


@pytest.mark.unit
def test_fixed_discount_is_capped_at_base():
    coupon = CouponFactory.create(
        discount_type=DiscountType.FIXED, value=Decimal("5000")
    )
    assert compute_discount(coupon, 3200) == 3200
    assert compute_discount(coupon, 0) == 0


@pytest.mark.unit
def test_category_coupon_discounts_matching_lines_only():
    category = CategoryFactory.create()
    jacket = ProductFactory.create(price=20000)
    socks = ProductFactory.create(price=3000)
    coupon = CouponFactory.create(category_id=category.id, value=Decimal("10"))
    lines = [_line(jacket, category_id=category.id), _line(socks, quantity=2)]

    base = applicable_subtotal(coupon, lines)
    assert base == 20000
    assert compute_discount(coupon, base) == 2000


@pytest.mark.unit
def test_product_restricted_coupon():
    jacket = ProductFactory.create(price=20000)
    socks = ProductFactory.create(price=3000)
    coupon = CouponFactory.create(value=Decimal("50"))
    coupon.products = [socks]
    lines = [_line(jacket), _line(socks)]

    check_coupon(coupon, 23000, lines, NOW)
    assert applicable_subtotal(coupon, lines) == 3000


@pytest.mark.unit
def test_codes_are_case_insensitive():
    assert normalize_code("  save10 ") == "SAVE10"
