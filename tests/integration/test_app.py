"""App-level behaviour: health, request ids and error rendering."""

import uuid

import pytest


@pytest.mark.integration
@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "shop"}


@pytest.mark.integration
@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.integration
@pytest.mark.asyncio
async def test_request_id_is_generated_when_missing(client):
    response = await client.get("/shop/categories")

    assert response.headers.get("X-Request-ID")


@pytest.mark.integration
@pytest.mark.asyncio
async def test_domain_errors_render_detail_and_code(client):
    response = await client.get(f"/shop/products/{uuid.uuid4().hex}")

    assert response.status_code == 404
    assert response.json() == {"detail": "Product not found", "code": "not_found"}


@pytest.mark.integration
@pytest.mark.asyncio
async def test_admin_routes_reject_bad_tokens(client):
    response = await client.get(
        "/admin/shop/orders", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401
