"""Fixtures for API-level checkout tests."""

import pytest
from checkout.api import (
    address_router,
    cart_router,
    coupon_router,
    maintenance_router,
    order_router,
    payment_router,
)
from checkout.errors import GatewayError, PersistenceError
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client(gateway):
    app = FastAPI()
    for router in (cart_router, coupon_router, address_router, order_router, payment_router, maintenance_router):
        app.include_router(router)
    register_exception_handlers(app)

    @app.exception_handler(GatewayError)
    async def gateway_error(request: Request, exc: GatewayError):
        return JSONResponse(status_code=502, content={"error": exc.message})

    @app.exception_handler(PersistenceError)
    async def persistence_error(request: Request, exc: PersistenceError):
        return JSONResponse(status_code=500, content={"error": exc.message})

    return TestClient(app)


@pytest.fixture()
def cart_id(client):
    """A cart for cust-001 holding one 799.00 item."""
    response = client.post("/carts", json={"customer_id": "cust-001"})
    assert response.status_code == 201
    cart_id = response.json()["cart_id"]
    response = client.post(
        f"/carts/{cart_id}/items",
        json={"product_id": "prod-001", "name": "Cotton Kurta", "sku": "KUR-001", "unit_price": 799.0},
    )
    assert response.status_code == 201
    return cart_id


@pytest.fixture()
def address_id(client, shipping_address):
    response = client.post("/customers/cust-001/addresses", json=shipping_address)
    assert response.status_code == 201
    return response.json()["address_id"]
