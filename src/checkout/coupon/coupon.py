"""Coupon aggregate — a discount code with eligibility rules and usage limits.

A coupon is *applicable* to a cart only when it is active, the current time is
inside its optional ``[starts_at, expires_at]`` window, the cart subtotal meets
the optional minimum, and the global usage cap has not been reached. The
per-customer cap is checked by the validator, which can see order history.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Integer, String

from checkout.coupon.events import (
    CouponActivated,
    CouponCreated,
    CouponDeactivated,
    CouponRedeemed,
    CouponUpdated,
)
from checkout.domain import checkout


class CouponType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CouponRejection(Enum):
    """Reasons a coupon cannot be applied, in the order they are checked."""

    INVALID_CODE = "invalid_code"
    NOT_YET_ACTIVE = "not_yet_active"
    EXPIRED = "expired"
    MINIMUM_NOT_MET = "minimum_not_met"
    USAGE_EXCEEDED = "usage_exceeded"
    USER_LIMIT_REACHED = "user_limit_reached"


_REJECTION_MESSAGES = {
    CouponRejection.INVALID_CODE: "Invalid coupon code",
    CouponRejection.NOT_YET_ACTIVE: "Coupon not yet active",
    CouponRejection.EXPIRED: "Coupon has expired",
    CouponRejection.MINIMUM_NOT_MET: "Minimum order amount not met",
    CouponRejection.USAGE_EXCEEDED: "Coupon usage limit exceeded",
    CouponRejection.USER_LIMIT_REACHED: "You have already used this coupon the maximum number of times",
}


def rejection_message(reason: CouponRejection) -> str:
    return _REJECTION_MESSAGES[reason]


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@checkout.aggregate
class Coupon:
    code = String(required=True, max_length=50)
    name = String(max_length=255)
    coupon_type = String(required=True, choices=CouponType)
    value = Float(required=True, min_value=0.0)
    minimum_amount = Float(min_value=0.0)
    maximum_discount = Float(min_value=0.0)
    usage_limit = Integer(min_value=1)
    used_count = Integer(default=0)
    user_limit = Integer(min_value=1)
    starts_at = DateTime()
    expires_at = DateTime()
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def value_must_be_positive(self):
        if self.value is not None and self.value <= 0:
            raise ValidationError({"value": ["Discount value must be greater than zero"]})

    @invariant.post
    def percentage_cannot_exceed_hundred(self):
        if self.coupon_type == CouponType.PERCENTAGE.value and self.value is not None and self.value > 100:
            raise ValidationError({"value": ["Percentage discount cannot exceed 100"]})

    @invariant.post
    def validity_window_must_be_ordered(self):
        starts_at, expires_at = _as_utc(self.starts_at), _as_utc(self.expires_at)
        if starts_at and expires_at and starts_at >= expires_at:
            raise ValidationError({"expires_at": ["Expiry must be after the start of the validity window"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        coupon_type,
        value,
        name=None,
        minimum_amount=None,
        maximum_discount=None,
        usage_limit=None,
        user_limit=None,
        starts_at=None,
        expires_at=None,
        is_active=True,
    ):
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationError({"code": ["Coupon code is required"]})

        now = datetime.now(UTC)
        coupon = cls(
            code=normalized,
            name=name,
            coupon_type=coupon_type,
            value=value,
            minimum_amount=minimum_amount,
            maximum_discount=maximum_discount,
            usage_limit=usage_limit,
            used_count=0,
            user_limit=user_limit,
            starts_at=starts_at,
            expires_at=expires_at,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                coupon_type=coupon.coupon_type,
                value=coupon.value,
                created_at=now,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Eligibility
    # -------------------------------------------------------------------
    def rejection_for(self, subtotal, now=None) -> CouponRejection | None:
        """Return the first failing eligibility rule, or None when applicable."""
        now = _as_utc(now) or datetime.now(UTC)

        if not self.is_active:
            return CouponRejection.INVALID_CODE

        starts_at = _as_utc(self.starts_at)
        if starts_at and starts_at > now:
            return CouponRejection.NOT_YET_ACTIVE

        expires_at = _as_utc(self.expires_at)
        if expires_at and expires_at < now:
            return CouponRejection.EXPIRED

        if self.minimum_amount and subtotal < self.minimum_amount:
            return CouponRejection.MINIMUM_NOT_MET

        if self.usage_limit and (self.used_count or 0) >= self.usage_limit:
            return CouponRejection.USAGE_EXCEEDED

        return None

    def discount_for(self, subtotal) -> float:
        """Discount for a subtotal. Fixed coupons are not clamped to the subtotal."""
        if self.coupon_type == CouponType.FIXED.value:
            return float(self.value)

        amount = Decimal(str(subtotal)) * Decimal(str(self.value)) / Decimal("100")
        if self.maximum_discount:
            amount = min(amount, Decimal(str(self.maximum_discount)))
        return float(amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

    def status_label(self, now=None) -> str:
        """Admin-facing state: Inactive, Scheduled, Expired, Used Up or Active."""
        now = _as_utc(now) or datetime.now(UTC)
        if not self.is_active:
            return "Inactive"
        if self.starts_at and _as_utc(self.starts_at) > now:
            return "Scheduled"
        if self.expires_at and _as_utc(self.expires_at) < now:
            return "Expired"
        if self.usage_limit and (self.used_count or 0) >= self.usage_limit:
            return "Used Up"
        return "Active"

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def redeem(self, order_id):
        """Consume one use. Called when an order carrying this code is confirmed."""
        self.used_count = (self.used_count or 0) + 1
        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                order_id=str(order_id),
                used_count=self.used_count,
                redeemed_at=now,
            )
        )

    def update_rules(self, **changes):
        with atomic_change(self):
            for field_name, value in changes.items():
                setattr(self, field_name, value)
        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            CouponUpdated(
                coupon_id=str(self.id),
                code=self.code,
                updated_at=now,
            )
        )

    def activate(self):
        if self.is_active:
            raise ValidationError({"is_active": ["Coupon is already active"]})
        self.is_active = True
        self.updated_at = datetime.now(UTC)
        self.raise_(CouponActivated(coupon_id=str(self.id), code=self.code))

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"is_active": ["Coupon is already inactive"]})
        self.is_active = False
        self.updated_at = datetime.now(UTC)
        self.raise_(CouponDeactivated(coupon_id=str(self.id), code=self.code))
