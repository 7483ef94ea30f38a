"""Delivery domain API package."""

from delivery.api.errors import register_error_handlers
from delivery.api.routes import (
    cart_router,
    ops_router,
    order_router,
    payment_router,
    product_router,
    promo_router,
)

__all__ = [
    "cart_router",
    "order_router",
    "payment_router",
    "promo_router",
    "product_router",
    "ops_router",
    "register_error_handlers",
]
