"""Work that follows an order's confirmation.

Whether the order was confirmed at placement (cash on delivery) or by a
verified payment, the coupon it carries is redeemed and the cart it came from
is converted. Callers run this inside the same handler, so it commits in the
same unit of work as the confirmation itself.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from checkout.cart.cart import ShoppingCart
from checkout.coupon.coupon import Coupon
from checkout.coupon.validation import find_coupon

logger = structlog.get_logger(__name__)


def settle_confirmed_order(order) -> None:
    if order.coupon_code:
        coupon = find_coupon(order.coupon_code)
        if coupon is None:
            logger.warning(
                "Coupon missing at redemption",
                order_id=str(order.id),
                coupon_code=order.coupon_code,
            )
        else:
            coupon.redeem(order.id)
            current_domain.repository_for(Coupon).add(coupon)

    if order.cart_id:
        cart_repo = current_domain.repository_for(ShoppingCart)
        try:
            cart = cart_repo.get(order.cart_id)
        except ObjectNotFoundError:
            logger.warning("Cart missing at conversion", order_id=str(order.id), cart_id=str(order.cart_id))
        else:
            cart.convert(order.id)
            cart_repo.add(cart)

    logger.info(
        "Order confirmed",
        order_id=str(order.id),
        order_number=order.order_number,
        payment_method=order.payment_method,
        total_amount=order.total_amount,
    )
