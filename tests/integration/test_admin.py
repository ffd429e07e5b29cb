"""Integration tests for the admin catalog, coupon, order and settings endpoints."""

from decimal import Decimal

import pytest
from sqlalchemy import select

from libs.auth.models import AuthUser
from services.shop_service.models import (
    Coupon,
    InventoryLog,
    InventoryReason,
    OrderStatus,
    PaymentMethod,
    SettingAudit,
    StoreAuditLog,
)
from services.shop_service.services import orders as orders_service
from services.shop_service.services.settings_store import SettingsCache, load_settings
from tests.factories import OrderFactory

# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest.mark.integration
@pytest.mark.asyncio
async def test_create_product_posts_opening_stock(client, db_session, admin_headers):
    response = await client.post(
        "/admin/shop/products",
        json={"name": "Beanie", "slug": "beanie", "price": 4990, "stock": 12},
        headers=admin_headers,
    )

    assert response.status_code == 201
    product_id = response.json()["id"]

    total = await client.get(
        f"/admin/shop/inventory/{product_id}/ledger-total", headers=admin_headers
    )
    assert total.json()["stock"] == 12

    entry = (await db_session.execute(select(InventoryLog))).scalar_one()
    assert entry.reason == InventoryReason.RESTOCK


@pytest.mark.integration
@pytest.mark.asyncio
async def test_price_change_is_audited(client, db_session, catalog, admin_headers):
    jacket = catalog["jacket"]

    response = await client.patch(
        f"/admin/shop/products/{jacket.id}",
        json={"sale_price": 21990},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["current_price"] == 21990

    log = (await db_session.execute(select(StoreAuditLog))).scalar_one()
    assert log.action == "price_changed"
    assert log.performed_by == "admin-1"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_product_update_rejects_null_for_required_fields(
    client, catalog, admin_headers
):
    url = f"/admin/shop/products/{catalog['jacket'].id}"

    for field in ("name", "slug", "price"):
        response = await client.patch(url, json={field: None}, headers=admin_headers)
        assert response.status_code == 422

    cleared_sale = await client.patch(
        url, json={"sale_price": None}, headers=admin_headers
    )
    assert cleared_sale.status_code == 200


@pytest.mark.integration
@pytest.mark.asyncio
async def test_archived_product_leaves_the_storefront(client, catalog, admin_headers):
    jacket = catalog["jacket"]

    response = await client.delete(
        f"/admin/shop/products/{jacket.id}", headers=admin_headers
    )
    listing = await client.get("/shop/products")
    detail = await client.get(f"/shop/products/{jacket.slug}")

    assert response.status_code == 200
    assert response.json()["is_archived"] is True
    assert jacket.slug not in [p["slug"] for p in listing.json()]
    assert detail.status_code == 404


@pytest.mark.integration
@pytest.mark.asyncio
async def test_storefront_product_detail_lists_variants(client, catalog):
    response = await client.get("/shop/products/logo-tee")

    assert response.status_code == 200
    skus = sorted(v["sku"] for v in response.json()["variants"])
    assert skus == ["TEE-L", "TEE-S"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_catalog_admin_requires_admin(client, customer_headers):
    response = await client.post(
        "/admin/shop/categories",
        json={"name": "Hats", "slug": "hats"},
        headers=customer_headers,
    )

    assert response.status_code == 403


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------


@pytest.mark.integration
@pytest.mark.asyncio
async def test_coupon_crud(client, catalog, admin_headers):
    created = await client.post(
        "/admin/shop/coupons",
        json={
            "code": "spring20",
            "discount_type": "percentage",
            "value": "20",
            "maximum_discount": 5000,
            "product_ids": [str(catalog["jacket"].id)],
        },
        headers=admin_headers,
    )
    assert created.status_code == 201
    coupon = created.json()
    assert coupon["code"] == "SPRING20"
    assert coupon["product_ids"] == [str(catalog["jacket"].id)]

    updated = await client.patch(
        f"/admin/shop/coupons/{coupon['id']}",
        json={"usage_limit": 100},
        headers=admin_headers,
    )
    assert updated.json()["usage_limit"] == 100

    deleted = await client.delete(
        f"/admin/shop/coupons/{coupon['id']}", headers=admin_headers
    )
    assert deleted.status_code == 204

    missing = await client.get(
        f"/admin/shop/coupons/{coupon['id']}", headers=admin_headers
    )
    assert missing.status_code == 404


@pytest.mark.integration
@pytest.mark.asyncio
async def test_duplicate_coupon_code_is_rejected(client, admin_headers):
    body = {"code": "DUP", "discount_type": "fixed", "value": "1000"}

    first = await client.post("/admin/shop/coupons", json=body, headers=admin_headers)
    second = await client.post(
        "/admin/shop/coupons", json={**body, "code": "dup"}, headers=admin_headers
    )

    assert first.status_code == 201
    assert second.status_code == 400


@pytest.mark.integration
@pytest.mark.asyncio
async def test_percentage_over_100_is_422(client, admin_headers):
    response = await client.post(
        "/admin/shop/coupons",
        json={"code": "TOOMUCH", "discount_type": "percentage", "value": "101"},
        headers=admin_headers,
    )

    assert response.status_code == 422


@pytest.mark.integration
@pytest.mark.asyncio
async def test_percentage_update_over_100_is_rejected(client, admin_headers):
    created = await client.post(
        "/admin/shop/coupons",
        json={"code": "HALF", "discount_type": "percentage", "value": "50"},
        headers=admin_headers,
    )
    url = f"/admin/shop/coupons/{created.json()['id']}"

    too_much = await client.patch(url, json={"value": "150"}, headers=admin_headers)
    cleared = await client.patch(url, json={"value": None}, headers=admin_headers)
    current = await client.get(url, headers=admin_headers)

    assert too_much.status_code == 400
    assert cleared.status_code == 422
    assert Decimal(current.json()["value"]) == Decimal("50")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_fixed_coupon_update_may_exceed_100(client, admin_headers):
    created = await client.post(
        "/admin/shop/coupons",
        json={"code": "FIVEK", "discount_type": "fixed", "value": "1000"},
        headers=admin_headers,
    )

    response = await client.patch(
        f"/admin/shop/coupons/{created.json()['id']}",
        json={"value": "5000"},
        headers=admin_headers,
    )

    assert response.status_code == 200


@pytest.mark.integration
@pytest.mark.asyncio
async def test_used_coupon_is_deactivated_not_deleted(
    client, db_session, catalog, admin_headers
):
    created = await client.post(
        "/admin/shop/coupons",
        json={"code": "USED", "discount_type": "fixed", "value": "500"},
        headers=admin_headers,
    )
    db_session.add(OrderFactory.create(product=catalog["jacket"], coupon_code="USED"))
    await db_session.commit()

    response = await client.delete(
        f"/admin/shop/coupons/{created.json()['id']}", headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    coupon = (
        await db_session.execute(select(Coupon).where(Coupon.code == "USED"))
    ).scalar_one()
    assert coupon.is_active is False


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.mark.integration
@pytest.mark.asyncio
async def test_cod_order_walks_forward_one_step_at_a_time(
    client, db_session, catalog, admin_headers
):
    order = OrderFactory.create(
        product=catalog["jacket"], quantity=1, payment_method=PaymentMethod.COD
    )
    db_session.add(order)
    await db_session.commit()
    url = f"/admin/shop/orders/{order.id}/status"

    skipped = await client.patch(url, json={"status": "shipped"}, headers=admin_headers)
    assert skipped.status_code == 409

    for status in ("paid", "shipped", "completed"):
        response = await client.patch(url, json={"status": status}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == status

    body = response.json()
    assert body["paid_at"] and body["shipped_at"] and body["completed_at"]

    backwards = await client.patch(url, json={"status": "paid"}, headers=admin_headers)
    assert backwards.status_code == 409

    audits = await db_session.execute(
        select(StoreAuditLog).where(StoreAuditLog.entity_id == str(order.id))
    )
    assert len(audits.scalars().all()) == 3


@pytest.mark.integration
@pytest.mark.asyncio
async def test_cod_payment_and_its_audit_commit_together(
    db_session, catalog, monkeypatch
):
    order = OrderFactory.create(
        product=catalog["jacket"], quantity=1, payment_method=PaymentMethod.COD
    )
    db_session.add(order)
    await db_session.commit()
    admin = AuthUser(sub="admin-1", email="admin@nexu.hu", role="admin")

    def failing_audit(*args, **kwargs):
        raise RuntimeError("audit table unavailable")

    monkeypatch.setattr(orders_service, "log_audit", failing_audit)

    with pytest.raises(RuntimeError):
        await orders_service.advance_order_status(
            db_session, order.id, OrderStatus.PAID, user=admin
        )
    await db_session.rollback()

    await db_session.refresh(order)
    assert order.status == OrderStatus.PENDING
    assert (await db_session.execute(select(InventoryLog))).scalars().all() == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_cod_confirmation_email_goes_out_after_commit(
    db_session, catalog, monkeypatch
):
    order = OrderFactory.create(
        product=catalog["jacket"], quantity=1, payment_method=PaymentMethod.COD
    )
    db_session.add(order)
    await db_session.commit()
    admin = AuthUser(sub="admin-1", email="admin@nexu.hu", role="admin")
    sent = []

    async def record(order):
        audits = await db_session.execute(select(StoreAuditLog))
        sent.append((order.status, len(audits.scalars().all())))
        return True

    monkeypatch.setattr(orders_service, "send_order_confirmation", record)

    await orders_service.advance_order_status(
        db_session, order.id, OrderStatus.PAID, user=admin
    )

    assert sent == [(OrderStatus.PAID, 1)]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_cancel_releases_hold(client, db_session, catalog, admin_headers):
    jacket = catalog["jacket"]
    order = OrderFactory.create(product=jacket, quantity=4)
    db_session.add(order)
    await db_session.commit()

    response = await client.patch(
        f"/admin/shop/orders/{order.id}/status",
        json={"status": "cancelled"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json()["cancel_reason"] == "admin"
    await db_session.refresh(jacket)
    assert jacket.reserved == 0


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_order_list_filters_by_status(
    client, db_session, catalog, admin_headers
):
    pending = OrderFactory.create(product=catalog["jacket"])
    paid = OrderFactory.create(status=OrderStatus.PAID)
    db_session.add_all([pending, paid])
    await db_session.commit()

    response = await client.get(
        "/admin/shop/orders", params={"status": "paid"}, headers=admin_headers
    )

    assert [o["id"] for o in response.json()] == [str(paid.id)]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.mark.integration
@pytest.mark.asyncio
async def test_settings_defaults(client, admin_headers):
    response = await client.get("/admin/shop/settings", headers=admin_headers)

    assert response.json() == {"shipping_fee": 2990, "free_shipping_threshold": 20000}


@pytest.mark.integration
@pytest.mark.asyncio
async def test_settings_update_reaches_quotes_immediately(
    client, db_session, catalog, admin_headers
):
    """The storefront's cached config is dropped when an admin saves settings."""
    line = {"items": [{"product_id": str(catalog["jacket"].id), "quantity": 1}]}

    before = await client.post("/shop/cart/quote", json=line)
    assert before.json()["shipping_cost"] == 0

    saved = await client.put(
        "/admin/shop/settings",
        json={"shipping_fee": 1990, "free_shipping_threshold": 30000},
        headers=admin_headers,
    )
    after = await client.post("/shop/cart/quote", json=line)

    assert saved.json() == {"shipping_fee": 1990, "free_shipping_threshold": 30000}
    assert after.json()["shipping_cost"] == 1990
    assert after.json()["total"] == 26990

    audits = await db_session.execute(select(SettingAudit).order_by(SettingAudit.key))
    assert [(a.key, a.old_value, a.new_value) for a in audits.scalars()] == [
        ("free_shipping_threshold", None, "30000"),
        ("shipping_fee", None, "1990"),
    ]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_settings_cache_serves_stale_values_until_invalidated(db_session):
    from services.shop_service.models import StoreSetting

    cache = SettingsCache(ttl=3600)
    assert (await cache.get(db_session)).shipping_fee == 2990

    db_session.add(StoreSetting(key="shipping_fee", value="990"))
    await db_session.commit()
    assert (await cache.get(db_session)).shipping_fee == 2990

    cache.invalidate()
    assert (await cache.get(db_session)).shipping_fee == 990
    assert (await load_settings(db_session))["shipping_fee"] == 990


@pytest.mark.integration
@pytest.mark.asyncio
async def test_negative_settings_are_422(client, admin_headers):
    response = await client.put(
        "/admin/shop/settings", json={"shipping_fee": -1}, headers=admin_headers
    )

    assert response.status_code == 422
