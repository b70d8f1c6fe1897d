"""Coupon validation — applicability and discount for a code against a cart.

Checks run in a fixed order and the first failure wins:

    invalid code -> not yet active -> expired -> minimum not met
    -> usage exceeded -> per-customer limit reached

Validation has no side effects. Usage is consumed by ``Coupon.redeem()`` when
an order carrying the code is confirmed.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from checkout.coupon.coupon import Coupon, CouponRejection, normalize_code, rejection_message

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CouponQuote:
    """An accepted coupon: the normalized code and the discount it grants."""

    coupon_id: str
    normalized_code: str
    discount_amount: float


class CouponRejected(ValidationError):
    def __init__(self, reason: CouponRejection, code: str | None = None):
        self.reason = reason
        self.code = code
        super().__init__({"coupon_code": [rejection_message(reason)]})


def find_coupon(code: str) -> Coupon | None:
    normalized = normalize_code(code)
    if not normalized:
        return None
    results = current_domain.repository_for(Coupon)._dao.query.filter(code=normalized).all().items
    return results[0] if results else None


def redemptions_by_customer(code: str, customer_id: str) -> int:
    """Number of this customer's orders that consumed the coupon."""
    from checkout.order.order import Order

    orders = (
        current_domain.repository_for(Order)
        ._dao.query.filter(customer_id=str(customer_id), coupon_code=normalize_code(code))
        .all()
        .items
    )
    return sum(1 for order in orders if order.confirmed_at is not None)


def validate_coupon(code, subtotal, customer_id=None, now=None) -> CouponQuote:
    """Validate ``code`` for a cart subtotal, raising ``CouponRejected`` on failure."""
    now = now or datetime.now(UTC)
    normalized = normalize_code(code)

    coupon = find_coupon(normalized)
    reason = CouponRejection.INVALID_CODE if coupon is None else coupon.rejection_for(subtotal, now)

    if reason is None and customer_id and coupon.user_limit:
        if redemptions_by_customer(normalized, customer_id) >= coupon.user_limit:
            reason = CouponRejection.USER_LIMIT_REACHED

    if reason is not None:
        logger.info(
            "Coupon rejected",
            coupon_code=normalized,
            reason=reason.value,
            subtotal=subtotal,
        )
        raise CouponRejected(reason, code=normalized)

    return CouponQuote(
        coupon_id=str(coupon.id),
        normalized_code=coupon.code,
        discount_amount=coupon.discount_for(subtotal),
    )
