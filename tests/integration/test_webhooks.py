"""Integration tests for the Stripe webhook and the paid transition."""

import json
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from services.shop_service.errors import InvalidTransitionError
from services.shop_service.models import (
    Coupon,
    Customer,
    InventoryLog,
    InventoryReason,
    Order,
    OrderStatus,
    Product,
    WebhookEvent,
)
from services.shop_service.services.orders import mark_order_paid
from tests.helpers import payment_succeeded_event, sign_webhook
from tests.factories import CouponFactory, CustomerFactory, OrderFactory

WEBHOOK_URL = "/shop/webhooks/stripe"


async def _post_event(client, payload: bytes, signature: str = None):
    return await client.post(
        WEBHOOK_URL,
        content=payload,
        headers={
            "Content-Type": "application/json",
            "Stripe-Signature": signature or sign_webhook(payload),
        },
    )


async def _pending_order(db_session, catalog, quantity=2, **overrides):
    jacket = catalog["jacket"]
    order = OrderFactory.create(
        product=jacket,
        quantity=quantity,
        payment_reference="pi_test_order",
        **overrides,
    )
    db_session.add(order)
    await db_session.commit()
    return order


async def _ledger(db_session, order):
    result = await db_session.execute(
        select(InventoryLog).where(InventoryLog.reference_id == str(order.id))
    )
    return result.scalars().all()


# ---------------------------------------------------------------------------
# Paid transition
# ---------------------------------------------------------------------------


@pytest.mark.integration
@pytest.mark.asyncio
async def test_payment_succeeded_marks_order_paid(client, db_session, catalog):
    order = await _pending_order(db_session, catalog, quantity=2)

    response = await _post_event(client, payment_succeeded_event(order))

    assert response.status_code == 200
    assert response.json() == {"received": True}

    await db_session.refresh(order)
    assert order.status == OrderStatus.PAID
    assert order.paid_at is not None

    product = await db_session.get(Product, catalog["jacket"].id)
    await db_session.refresh(product)
    assert product.stock == 8
    assert product.reserved == 0

    entries = await _ledger(db_session, order)
    assert [(e.change, e.reason) for e in entries] == [
        (-2, InventoryReason.ORDER_PLACED)
    ]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_replayed_event_is_processed_once(client, db_session, catalog):
    """Delivering the same event twice posts exactly one set of ledger entries."""
    order = await _pending_order(db_session, catalog, quantity=2)
    payload = payment_succeeded_event(order, event_id="evt_replay")

    first = await _post_event(client, payload)
    second = await _post_event(client, payload)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json() == {"received": True}

    entries = await _ledger(db_session, order)
    assert len(entries) == 1

    product = await db_session.get(Product, catalog["jacket"].id)
    await db_session.refresh(product)
    assert product.stock == 8

    result = await db_session.execute(
        select(WebhookEvent).where(WebhookEvent.event_id == "evt_replay")
    )
    event = result.scalar_one()
    await db_session.refresh(event)
    assert event.processed is True
    assert event.processed_at is not None


@pytest.mark.integration
@pytest.mark.asyncio
async def test_second_event_for_paid_order_is_a_noop(client, db_session, catalog):
    """A different event id for an already-paid order does not post again."""
    order = await _pending_order(db_session, catalog, quantity=1)

    await _post_event(client, payment_succeeded_event(order, event_id="evt_a"))
    response = await _post_event(
        client, payment_succeeded_event(order, event_id="evt_b")
    )

    assert response.status_code == 200
    assert len(await _ledger(db_session, order)) == 1


@pytest.mark.integration
@pytest.mark.asyncio
async def test_paid_order_consumes_coupon_and_counts_spend(
    client, db_session, catalog
):
    db_session.add(CouponFactory.create(code="ONCE", usage_limit=1, value=Decimal("10")))
    db_session.add(CustomerFactory.create(auth_id="customer-1", total_spent=1000))
    await db_session.commit()
    order = await _pending_order(
        db_session,
        catalog,
        quantity=1,
        customer_auth_id="customer-1",
        coupon_code="ONCE",
        coupon_discount=2500,
        total_price=22500,
    )

    response = await _post_event(client, payment_succeeded_event(order))
    assert response.status_code == 200

    coupon = (
        await db_session.execute(select(Coupon).where(Coupon.code == "ONCE"))
    ).scalar_one()
    await db_session.refresh(coupon)
    assert coupon.usage_count == 1

    customer = (
        await db_session.execute(
            select(Customer).where(Customer.auth_id == "customer-1")
        )
    ).scalar_one()
    await db_session.refresh(customer)
    assert customer.total_spent == 23500


@pytest.mark.integration
@pytest.mark.asyncio
async def test_exhausted_coupon_is_rejected_at_checkout(client, db_session, catalog):
    db_session.add(
        CouponFactory.create(code="ONCE", usage_limit=1, usage_count=1)
    )
    await db_session.commit()

    response = await client.post(
        "/shop/cart/quote",
        json={
            "items": [{"product_id": str(catalog["jacket"].id), "quantity": 1}],
            "coupon_code": "ONCE",
        },
    )

    assert response.status_code == 400
    assert response.json()["code"] == "coupon_usage_exceeded"


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


@pytest.mark.integration
@pytest.mark.asyncio
async def test_bad_signature_is_rejected(client, db_session, catalog):
    order = await _pending_order(db_session, catalog)
    payload = payment_succeeded_event(order)

    response = await _post_event(
        client, payload, signature=sign_webhook(payload, secret="whsec_wrong")
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_signature"
    await db_session.refresh(order)
    assert order.status == OrderStatus.PENDING

    events = await db_session.execute(select(WebhookEvent))
    assert events.scalars().all() == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_amount_mismatch_leaves_order_pending(client, db_session, catalog):
    order = await _pending_order(db_session, catalog, quantity=1)
    payload = payment_succeeded_event(order, event_id="evt_short", amount=100)

    response = await _post_event(client, payload)

    assert response.status_code == 400
    await db_session.refresh(order)
    assert order.status == OrderStatus.PENDING
    assert await _ledger(db_session, order) == []

    event = (
        await db_session.execute(
            select(WebhookEvent).where(WebhookEvent.event_id == "evt_short")
        )
    ).scalar_one()
    await db_session.refresh(event)
    assert event.processed is False
    assert "amount" in event.error


@pytest.mark.integration
@pytest.mark.asyncio
async def test_unhandled_event_type_is_acknowledged(client, db_session):
    payload = b'{"id": "evt_other", "type": "charge.refunded", "data": {"object": {}}}'

    response = await _post_event(client, payload)

    assert response.status_code == 200
    event = (
        await db_session.execute(
            select(WebhookEvent).where(WebhookEvent.event_id == "evt_other")
        )
    ).scalar_one()
    await db_session.refresh(event)
    assert event.processed is True


@pytest.mark.integration
@pytest.mark.asyncio
async def test_cancelling_a_paid_order_conflicts(
    client, db_session, catalog, customer_headers
):
    order = await _pending_order(
        db_session, catalog, quantity=1, customer_auth_id="customer-1"
    )
    await _post_event(client, payment_succeeded_event(order))

    response = await client.post(
        f"/shop/orders/{order.id}/cancel", headers=customer_headers
    )

    assert response.status_code == 409
    await db_session.refresh(order)
    assert order.status == OrderStatus.PAID


@pytest.mark.integration
@pytest.mark.asyncio
async def test_payment_for_cancelled_order_is_rejected(client, db_session, catalog):
    order = await _pending_order(
        db_session, catalog, status=OrderStatus.CANCELLED
    )

    response = await _post_event(client, payment_succeeded_event(order))

    assert response.status_code == 409
    await db_session.refresh(order)
    assert order.status == OrderStatus.CANCELLED


async def _cancel_behind_the_session(db_session, order):
    """Cancel through a Core statement so the loaded Order keeps its old status."""
    table = Order.__table__
    await db_session.execute(
        table.update()
        .where(table.c.id == order.id)
        .values(status=OrderStatus.CANCELLED, cancel_reason="customer")
    )
    await db_session.commit()


@pytest.mark.integration
@pytest.mark.asyncio
async def test_mark_paid_rereads_status_under_lock(db_session, catalog):
    order = await _pending_order(db_session, catalog, quantity=2)
    await _cancel_behind_the_session(db_session, order)
    assert order.status == OrderStatus.PENDING

    with pytest.raises(InvalidTransitionError):
        await mark_order_paid(db_session, order.id)
    await db_session.rollback()

    await db_session.refresh(order)
    await db_session.refresh(catalog["jacket"])
    assert order.status == OrderStatus.CANCELLED
    assert await _ledger(db_session, order) == []
    assert catalog["jacket"].stock == 10


@pytest.mark.integration
@pytest.mark.asyncio
async def test_payment_after_concurrent_cancel_is_rejected(
    client, db_session, catalog
):
    """The webhook sees the order before the cancel commits; payment must fail."""
    order = await _pending_order(
        db_session,
        catalog,
        quantity=1,
        coupon_code="SAVE10",
        customer_auth_id="customer-1",
    )
    db_session.add(CouponFactory.create(code="SAVE10", value=Decimal("10")))
    await db_session.commit()
    payload = payment_succeeded_event(order, event_id="evt_race")
    await _cancel_behind_the_session(db_session, order)

    response = await _post_event(client, payload)

    assert response.status_code == 409
    await db_session.refresh(order)
    assert order.status == OrderStatus.CANCELLED
    assert order.paid_at is None
    assert await _ledger(db_session, order) == []
    coupon = (
        await db_session.execute(select(Coupon).where(Coupon.code == "SAVE10"))
    ).scalar_one()
    await db_session.refresh(coupon)
    assert coupon.usage_count == 0
    customers = await db_session.execute(select(Customer))
    assert customers.scalars().all() == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_payment_for_unknown_order_is_404(client, db_session):
    payload = json.dumps(
        {
            "id": "evt_orphan",
            "type": "payment_intent.succeeded",
            "data": {
                "object": {
                    "id": "pi_unknown",
                    "amount": 500000,
                    "metadata": {"orderId": str(uuid.uuid4())},
                }
            },
        }
    ).encode("utf-8")

    response = await _post_event(client, payload)

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"
    event = (
        await db_session.execute(
            select(WebhookEvent).where(WebhookEvent.event_id == "evt_orphan")
        )
    ).scalar_one()
    await db_session.refresh(event)
    assert event.processed is False
    assert event.error == "Order not found for payment"
