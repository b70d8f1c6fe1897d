"""Checkout summary for a cart — the same numbers the order will be written with."""

from dataclasses import dataclass, field

from checkout.cart.cart import ShoppingCart
from checkout.coupon.coupon import rejection_message
from checkout.coupon.validation import CouponRejected, validate_coupon
from checkout.pricing.engine import PriceBreakdown, price


@dataclass(frozen=True)
class CartSummary:
    cart_id: str
    breakdown: PriceBreakdown
    lines: list[dict] = field(default_factory=list)
    coupon_code: str | None = None
    coupon_error: str | None = None


def summarize(cart: ShoppingCart, customer_id=None, now=None, strict=False) -> CartSummary:
    """Price a cart, re-validating its coupon against the current subtotal.

    With ``strict=False`` (cart display) a coupon that no longer applies is
    reported in ``coupon_error`` and contributes no discount. With
    ``strict=True`` (order placement) the rejection is raised.
    """
    subtotal = cart.subtotal
    discount = 0.0
    coupon_code = None
    coupon_error = None

    if cart.coupon_code:
        try:
            quote = validate_coupon(
                cart.coupon_code,
                subtotal,
                customer_id=customer_id or cart.customer_id,
                now=now,
            )
        except CouponRejected as exc:
            if strict:
                raise
            coupon_error = rejection_message(exc.reason)
        else:
            discount = quote.discount_amount
            coupon_code = quote.normalized_code

    lines = [
        {
            "line_id": str(line.id),
            "product_id": str(line.product_id),
            "name": line.name,
            "sku": line.sku,
            "image": line.image,
            "unit_price": line.unit_price,
            "quantity": line.quantity,
            "line_total": line.line_total,
        }
        for line in cart.lines
    ]

    return CartSummary(
        cart_id=str(cart.id),
        breakdown=price(subtotal, discount),
        lines=lines,
        coupon_code=coupon_code,
        coupon_error=coupon_error,
    )
