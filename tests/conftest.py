"""
Shared fixtures for shop tests: signed-in users, a mocked Stripe gateway and
a small seeded catalog.

Database, app and client fixtures live in the root conftest.py.
"""

from urllib.parse import parse_qsl

import httpx
import pytest
import pytest_asyncio

from tests.factories import CategoryFactory, ProductFactory, VariantFactory
from tests.helpers import auth_headers

# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture
def customer_headers():
    return auth_headers("customer-1", "customer@test.com")


@pytest.fixture
def other_customer_headers():
    return auth_headers("customer-2", "other@test.com")


@pytest.fixture
def admin_headers():
    return auth_headers("admin-1", "admin@nexu.hu", role="admin")


# ---------------------------------------------------------------------------
# Stripe
# ---------------------------------------------------------------------------


@pytest.fixture
def stripe_requests(app):
    """
    Route the checkout's Stripe client through an httpx.MockTransport.
    Yields the list of captured requests.
    """
    from services.shop_service.services.payments import (
        StripeClient,
        get_stripe_client,
    )

    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        form = dict(parse_qsl(request.content.decode()))
        intent_id = f"pi_test_{len(captured)}"
        return httpx.Response(
            200,
            json={
                "id": intent_id,
                "object": "payment_intent",
                "client_secret": f"{intent_id}_secret_abc",
                "amount": int(form["amount"]),
                "currency": form["currency"],
                "status": "requires_payment_method",
            },
        )

    app.dependency_overrides[get_stripe_client] = lambda: StripeClient(
        secret_key="sk_test_mock", transport=httpx.MockTransport(handler)
    )
    yield captured


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def catalog(db_session):
    """One category, a 25 000 Ft jacket (stock 10) and a T-shirt with two sizes."""
    category = CategoryFactory.create(name="Jackets", slug="jackets")
    db_session.add(category)
    await db_session.flush()

    jacket = ProductFactory.create(
        name="Rain Jacket", slug="rain-jacket", price=25000, stock=10,
        category_id=category.id,
    )
    shirt = ProductFactory.create(name="Logo Tee", slug="logo-tee", price=6990, stock=0)
    db_session.add_all([jacket, shirt])
    await db_session.flush()

    small = VariantFactory.create(product_id=shirt.id, sku="TEE-S", name="S", stock=5)
    large = VariantFactory.create(
        product_id=shirt.id, sku="TEE-L", name="L", stock=2, price_override=7490
    )
    db_session.add_all([small, large])
    await db_session.commit()

    return {
        "category": category,
        "jacket": jacket,
        "shirt": shirt,
        "shirt_s": small,
        "shirt_l": large,
    }
