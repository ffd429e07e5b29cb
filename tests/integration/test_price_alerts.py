"""Integration tests for price drop alerts."""

import pytest
from sqlalchemy import select

from services.shop_service.models import PriceAlert
from services.shop_service.services import price_alerts as alert_service
from services.shop_service.services.price_alerts import check_price_alerts


@pytest.fixture
def sent_emails(monkeypatch):
    """Capture price drop emails instead of sending them."""
    sent = []

    async def fake_send(**kwargs):
        sent.append(kwargs)
        return True

    monkeypatch.setattr(alert_service, "send_price_drop_email", fake_send)
    return sent


async def _subscribe(client, product, target, email="watcher@test.com", headers=None):
    return await client.post(
        "/shop/price-alerts",
        json={"email": email, "product_id": str(product.id), "target_price": target},
        headers=headers or {},
    )


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


@pytest.mark.integration
@pytest.mark.asyncio
async def test_guest_can_subscribe(client, catalog):
    response = await _subscribe(client, catalog["jacket"], 20000, email="Watcher@Test.com")

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "watcher@test.com"
    assert data["target_price"] == 20000
    assert data["triggered"] is False


@pytest.mark.integration
@pytest.mark.asyncio
async def test_target_must_be_below_current_price(client, catalog):
    response = await _subscribe(client, catalog["jacket"], 25000)

    assert response.status_code == 400


@pytest.mark.integration
@pytest.mark.asyncio
async def test_resubscribing_updates_the_same_alert(client, db_session, catalog):
    await _subscribe(client, catalog["jacket"], 20000)
    await _subscribe(client, catalog["jacket"], 18000)

    result = await db_session.execute(select(PriceAlert))
    alerts = result.scalars().all()
    assert len(alerts) == 1
    assert alerts[0].target_price == 18000


@pytest.mark.integration
@pytest.mark.asyncio
async def test_list_own_alerts(client, catalog, customer_headers):
    await _subscribe(client, catalog["jacket"], 20000, email="customer@test.com")
    await _subscribe(client, catalog["jacket"], 20000, email="someone@test.com")

    response = await client.get("/shop/price-alerts", headers=customer_headers)

    assert response.status_code == 200
    assert [a["email"] for a in response.json()] == ["customer@test.com"]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_listing_another_address_requires_admin(
    client, customer_headers, admin_headers
):
    denied = await client.get(
        "/shop/price-alerts",
        params={"email": "someone@test.com"},
        headers=customer_headers,
    )
    allowed = await client.get(
        "/shop/price-alerts",
        params={"email": "someone@test.com"},
        headers=admin_headers,
    )

    assert denied.status_code == 403
    assert allowed.status_code == 200


@pytest.mark.integration
@pytest.mark.asyncio
async def test_only_owner_or_admin_can_delete(
    client, catalog, customer_headers, other_customer_headers
):
    created = await _subscribe(client, catalog["jacket"], 20000, email="customer@test.com")
    alert_id = created.json()["id"]

    denied = await client.delete(
        f"/shop/price-alerts/{alert_id}", headers=other_customer_headers
    )
    deleted = await client.delete(
        f"/shop/price-alerts/{alert_id}", headers=customer_headers
    )

    assert denied.status_code == 403
    assert deleted.status_code == 204


# ---------------------------------------------------------------------------
# Notification job
# ---------------------------------------------------------------------------


@pytest.mark.integration
@pytest.mark.asyncio
async def test_alert_fires_once_when_price_drops(
    client, db_session, catalog, sent_emails
):
    jacket = catalog["jacket"]
    await _subscribe(client, jacket, 20000)

    assert await check_price_alerts(db_session) == 0

    jacket.sale_price = 19990
    await db_session.commit()

    assert await check_price_alerts(db_session) == 1
    assert await check_price_alerts(db_session) == 0

    assert len(sent_emails) == 1
    assert sent_emails[0]["to_email"] == "watcher@test.com"
    assert sent_emails[0]["current_price"] == 19990

    alert = (await db_session.execute(select(PriceAlert))).scalar_one()
    assert alert.triggered is True
    assert alert.notified_at is not None


@pytest.mark.integration
@pytest.mark.asyncio
async def test_failed_email_keeps_alert_armed(
    client, db_session, catalog, monkeypatch
):
    async def failing_send(**kwargs):
        return False

    monkeypatch.setattr(alert_service, "send_price_drop_email", failing_send)
    jacket = catalog["jacket"]
    await _subscribe(client, jacket, 20000)
    jacket.price = 15000
    await db_session.commit()

    assert await check_price_alerts(db_session) == 0

    alert = (await db_session.execute(select(PriceAlert))).scalar_one()
    assert alert.triggered is False


@pytest.mark.integration
@pytest.mark.asyncio
async def test_resubscribing_rearms_a_triggered_alert(
    client, db_session, catalog, sent_emails
):
    jacket = catalog["jacket"]
    await _subscribe(client, jacket, 20000)
    jacket.sale_price = 19000
    await db_session.commit()
    await check_price_alerts(db_session)

    await _subscribe(client, jacket, 15000)

    alert = (await db_session.execute(select(PriceAlert))).scalar_one()
    assert alert.triggered is False
    assert alert.notified_at is None
