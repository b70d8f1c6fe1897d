"""Checkout domain API package."""

from checkout.api.routes import (
    address_router,
    cart_router,
    coupon_router,
    maintenance_router,
    order_router,
    payment_router,
)

__all__ = [
    "cart_router",
    "coupon_router",
    "address_router",
    "order_router",
    "payment_router",
    "maintenance_router",
]
