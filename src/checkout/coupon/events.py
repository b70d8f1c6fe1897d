"""Domain events for the Coupon aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Coupon")
class CouponCreated:
    """A new coupon code was defined by an administrator."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    coupon_type = String(required=True)
    value = Float(required=True)
    created_at = DateTime(required=True)


@checkout.event(part_of="Coupon")
class CouponUpdated:
    """Eligibility rules or the discount value of a coupon changed."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    updated_at = DateTime(required=True)


@checkout.event(part_of="Coupon")
class CouponActivated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)


@checkout.event(part_of="Coupon")
class CouponDeactivated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)


@checkout.event(part_of="Coupon")
class CouponRedeemed:
    """A confirmed order consumed one use of the coupon."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    order_id = Identifier(required=True)
    used_count = Integer(required=True)
    redeemed_at = DateTime(required=True)
