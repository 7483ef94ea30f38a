import pytest
from delivery.api import (
    cart_router,
    ops_router,
    order_router,
    payment_router,
    product_router,
    promo_router,
    register_error_handlers,
)
from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture()
def client():
    app = FastAPI()
    register_error_handlers(app)
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(payment_router)
    app.include_router(promo_router)
    app.include_router(product_router)
    app.include_router(ops_router)
    return TestClient(app)


@pytest.fixture()
def cart_with_items(client, center, customer, product, push, gateway):
    response = client.post(f"/carts/{customer.id}/items", json={"product_id": str(product.id), "quantity": 2})
    assert response.status_code == 201
    return response.json()["data"]
