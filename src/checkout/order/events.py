"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderPlaced:
    """An order was written with its items and server-computed amounts."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    shipping_amount = Float(required=True)
    tax_amount = Float(required=True)
    discount_amount = Float(required=True)
    total_amount = Float(required=True)
    currency = String(required=True)
    payment_method = String(required=True)
    coupon_code = String()
    placed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderConfirmed:
    """The order was confirmed, either at placement (COD) or by a verified payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_method = String(required=True)
    coupon_code = String()
    cart_id = Identifier()
    confirmed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class PaymentSessionOpened:
    __version__ = 1

    order_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    amount = Integer(required=True)
    currency = String(required=True)
    expires_at = DateTime(required=True)


@checkout.event(part_of="Order")
class PaymentSessionClosed:
    """An unpaid gateway session expired and was released so the customer can retry."""

    __version__ = 1

    order_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    closed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class PaymentSucceeded:
    __version__ = 1

    order_id = Identifier(required=True)
    gateway_order_id = String(required=True)
    gateway_payment_id = String(required=True)
    amount = Float(required=True)
    paid_at = DateTime(required=True)


@checkout.event(part_of="Order")
class PaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    gateway_order_id = String()
    reason = String(required=True)
    failed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderProcessing:
    __version__ = 1

    order_id = Identifier(required=True)
    started_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    shipped_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(required=True)
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    amount = Float(required=True)
    refunded_at = DateTime(required=True)
