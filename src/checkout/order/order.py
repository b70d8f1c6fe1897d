"""Order aggregate — a placed order, its item snapshot and its payment state.

Amounts are written once at placement from the pricing engine and never
recomputed. After that the order only moves through status and payment
transitions:

    pending → confirmed → processing → shipped → delivered
    pending | confirmed | processing → cancelled
    pending → failed (payment failure)

cancelled, delivered and failed are terminal for ordinary transitions. Two
gateway outcomes are the exception: a verified capture for the order's own
gateway order confirms a failed order, and marks a cancelled order paid so it
can be refunded. A cancelled order whose payment was captured can be marked
refunded.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from checkout.domain import checkout
from checkout.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderDelivered,
    OrderPlaced,
    OrderProcessing,
    OrderRefunded,
    OrderShipped,
    PaymentFailed,
    PaymentSessionClosed,
    PaymentSessionOpened,
    PaymentSucceeded,
)
from checkout.pricing.engine import PriceBreakdown, line_total, to_minor_units

_TOLERANCE = Decimal("0.01")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    FAILED = "failed"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    RAZORPAY = "razorpay"
    COD = "cod"


class CancellationActor(Enum):
    CUSTOMER = "Customer"
    ADMIN = "Admin"
    SYSTEM = "System"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.FAILED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.FAILED: set(),  # Terminal
}

_CANCELLABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@checkout.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships, captured at placement.

    Later edits to the customer's address book do not change it.
    """

    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    address_line_1 = String(required=True, max_length=255)
    address_line_2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    phone = String(required=True, max_length=20)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@checkout.entity(part_of="Order")
class OrderItem:
    """Snapshot of a product line at the moment the order was placed."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    product_sku = String(max_length=50)
    product_image = String(max_length=1000)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@checkout.aggregate
class Order:
    customer_id = Identifier(required=True)
    order_number = String(required=True, max_length=50)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress)
    subtotal = Float(required=True, min_value=0.0)
    shipping_amount = Float(default=0.0, min_value=0.0)
    tax_amount = Float(default=0.0, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    total_amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="INR")
    payment_method = String(required=True, choices=PaymentMethod)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    coupon_code = String(max_length=50)
    gateway_order_id = String(max_length=255)
    gateway_payment_id = String(max_length=255)
    payment_session_expires_at = DateTime()
    idempotency_key = String(required=True, max_length=255, unique=True)
    cart_id = Identifier()
    failure_reason = String(max_length=500)
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=50)
    created_at = DateTime()
    confirmed_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    refunded_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def order_must_have_items(self):
        if not self.items:
            raise ValidationError({"items": ["An order must contain at least one item"]})

    @invariant.post
    def total_must_equal_components(self):
        expected = (
            Decimal(str(self.subtotal or 0))
            + Decimal(str(self.shipping_amount or 0))
            + Decimal(str(self.tax_amount or 0))
            - Decimal(str(self.discount_amount or 0))
        )
        if abs(expected - Decimal(str(self.total_amount or 0))) > _TOLERANCE:
            raise ValidationError(
                {"total_amount": ["Total must equal subtotal + shipping + tax - discount"]}
            )

    @invariant.post
    def items_must_sum_to_subtotal(self):
        items_total = sum((Decimal(str(item.total_price)) for item in self.items or []), Decimal("0"))
        if abs(items_total - Decimal(str(self.subtotal or 0))) > _TOLERANCE:
            raise ValidationError({"subtotal": ["Subtotal must equal the sum of item totals"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id,
        items_data,
        shipping_address,
        breakdown: PriceBreakdown,
        payment_method,
        idempotency_key,
        coupon_code=None,
        cart_id=None,
    ):
        """Build a pending order from cart lines and a computed price breakdown.

        Args:
            customer_id: The customer placing the order.
            items_data: List of dicts with product_id, product_name,
                        product_sku, product_image, quantity, unit_price.
            shipping_address: Dict matching ``ShippingAddress`` fields.
            breakdown: Output of ``pricing.engine.price()`` for the cart.
            payment_method: ``razorpay`` or ``cod``.
            idempotency_key: Client request id; one order per key.
        """
        if payment_method not in {m.value for m in PaymentMethod}:
            raise ValidationError({"payment_method": [f"Unsupported payment method: {payment_method}"]})

        now = datetime.now(UTC)
        items = [
            OrderItem(
                product_id=item["product_id"],
                product_name=item["product_name"],
                product_sku=item.get("product_sku"),
                product_image=item.get("product_image"),
                quantity=item["quantity"],
                unit_price=item["unit_price"],
                total_price=line_total(item["unit_price"], item["quantity"]),
            )
            for item in items_data
        ]

        order = cls(
            customer_id=customer_id,
            order_number=f"ORD-{int(now.timestamp() * 1000)}",
            items=items,
            shipping_address=ShippingAddress(**shipping_address),
            subtotal=breakdown.subtotal,
            shipping_amount=breakdown.shipping_amount,
            tax_amount=breakdown.tax_amount,
            discount_amount=breakdown.discount_amount,
            total_amount=breakdown.total_amount,
            currency=breakdown.currency,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            status=OrderStatus.PENDING.value,
            coupon_code=coupon_code,
            idempotency_key=idempotency_key,
            cart_id=cart_id,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(customer_id),
                item_count=len(items),
                subtotal=order.subtotal,
                shipping_amount=order.shipping_amount,
                tax_amount=order.tax_amount,
                discount_amount=order.discount_amount,
                total_amount=order.total_amount,
                currency=order.currency,
                payment_method=payment_method,
                coupon_code=coupon_code,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    @property
    def amount_in_minor_units(self) -> int:
        return to_minor_units(self.total_amount)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    def has_open_payment_session(self, now=None) -> bool:
        if not self.gateway_order_id or self.payment_session_expires_at is None:
            return False
        now = now or datetime.now(UTC)
        expires_at = self.payment_session_expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return expires_at > now

    def _confirm(self, now, recovering=False):
        if not recovering:
            self._assert_can_transition(OrderStatus.CONFIRMED)
        self.status = OrderStatus.CONFIRMED.value
        self.confirmed_at = now
        self.updated_at = now
        self.raise_(
            OrderConfirmed(
                order_id=str(self.id),
                payment_method=self.payment_method,
                coupon_code=self.coupon_code,
                cart_id=str(self.cart_id) if self.cart_id else None,
                confirmed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Cash on delivery
    # -------------------------------------------------------------------
    def confirm_cash_on_delivery(self):
        """Confirm a COD order at placement. Payment stays pending until delivery."""
        if self.payment_method != PaymentMethod.COD.value:
            raise ValidationError({"payment_method": ["Only cash-on-delivery orders are confirmed at placement"]})
        self._confirm(datetime.now(UTC))

    # -------------------------------------------------------------------
    # Online payment
    # -------------------------------------------------------------------
    def assert_payable(self):
        if self.payment_method != PaymentMethod.RAZORPAY.value:
            raise ValidationError({"payment_method": ["Online payment is not available for this order"]})
        if OrderStatus(self.status) != OrderStatus.PENDING or self.payment_status != PaymentStatus.PENDING.value:
            raise ValidationError({"status": [f"Cannot start payment for an order that is {self.status}"]})

    def open_payment_session(self, gateway_order_id, expires_at):
        self.assert_payable()
        self.gateway_order_id = gateway_order_id
        self.payment_session_expires_at = expires_at
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentSessionOpened(
                order_id=str(self.id),
                gateway_order_id=gateway_order_id,
                amount=self.amount_in_minor_units,
                currency=self.currency,
                expires_at=expires_at,
            )
        )

    def close_payment_session(self):
        """Release an expired, unpaid gateway order so a new one can be created."""
        if OrderStatus(self.status) != OrderStatus.PENDING or not self.gateway_order_id:
            return

        closed = self.gateway_order_id
        now = datetime.now(UTC)
        self.gateway_order_id = None
        self.payment_session_expires_at = None
        self.updated_at = now

        self.raise_(PaymentSessionClosed(order_id=str(self.id), gateway_order_id=closed, closed_at=now))

    def record_payment_success(self, gateway_order_id, gateway_payment_id) -> bool:
        """Mark a verified payment. Returns False when it was already recorded.

        A capture for the order's own gateway order is still accepted after an
        earlier attempt failed or after the order was cancelled, since the
        customer has been charged. A failed order is confirmed; a cancelled
        order stays cancelled with its payment held for refund.
        """
        if self.is_paid:
            if self.gateway_payment_id == gateway_payment_id:
                return False
            raise ValidationError({"payment_status": ["This order has already been paid"]})

        now = datetime.now(UTC)
        current = OrderStatus(self.status)
        own_gateway_order = bool(gateway_order_id) and gateway_order_id == self.gateway_order_id
        if current == OrderStatus.FAILED and own_gateway_order:
            self.failure_reason = None
            self._confirm(now, recovering=True)
        elif current != OrderStatus.CANCELLED or not own_gateway_order:
            self._confirm(now)
        self.payment_status = PaymentStatus.PAID.value
        self.gateway_order_id = gateway_order_id
        self.gateway_payment_id = gateway_payment_id
        self.payment_session_expires_at = None

        self.raise_(
            PaymentSucceeded(
                order_id=str(self.id),
                gateway_order_id=gateway_order_id,
                gateway_payment_id=gateway_payment_id,
                amount=self.total_amount,
                paid_at=now,
            )
        )
        return True

    def record_payment_failure(self, reason, gateway_order_id=None) -> bool:
        """Mark the payment failed. Returns False when it was already recorded."""
        if self.is_paid:
            raise ValidationError({"payment_status": ["Payment has already been verified for this order"]})
        if self.payment_status == PaymentStatus.FAILED.value:
            return False

        self._assert_can_transition(OrderStatus.FAILED)
        now = datetime.now(UTC)
        self.status = OrderStatus.FAILED.value
        self.payment_status = PaymentStatus.FAILED.value
        self.failure_reason = reason
        if gateway_order_id:
            self.gateway_order_id = gateway_order_id
        self.payment_session_expires_at = None
        self.updated_at = now

        self.raise_(
            PaymentFailed(
                order_id=str(self.id),
                gateway_order_id=self.gateway_order_id,
                reason=reason,
                failed_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Fulfillment
    # -------------------------------------------------------------------
    def mark_processing(self):
        self._assert_can_transition(OrderStatus.PROCESSING)
        now = datetime.now(UTC)
        self.status = OrderStatus.PROCESSING.value
        self.updated_at = now
        self.raise_(OrderProcessing(order_id=str(self.id), started_at=now))

    def mark_shipped(self):
        self._assert_can_transition(OrderStatus.SHIPPED)
        now = datetime.now(UTC)
        self.status = OrderStatus.SHIPPED.value
        self.shipped_at = now
        self.updated_at = now
        self.raise_(OrderShipped(order_id=str(self.id), shipped_at=now))

    def mark_delivered(self):
        self._assert_can_transition(OrderStatus.DELIVERED)
        now = datetime.now(UTC)
        self.status = OrderStatus.DELIVERED.value
        self.delivered_at = now
        self.updated_at = now
        self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=now))

    # -------------------------------------------------------------------
    # Cancellation and refund
    # -------------------------------------------------------------------
    def cancel(self, reason, cancelled_by):
        current = OrderStatus(self.status)
        if current == OrderStatus.CANCELLED:
            raise ValidationError({"status": ["This order has already been cancelled"]})
        if current not in _CANCELLABLE_STATES:
            raise ValidationError({"status": [f"This order cannot be cancelled as it is currently {current.value}"]})

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.cancelled_at = now
        self.payment_session_expires_at = None
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                reason=reason,
                cancelled_by=cancelled_by,
                cancelled_at=now,
            )
        )

    def mark_refunded(self):
        if OrderStatus(self.status) != OrderStatus.CANCELLED:
            raise ValidationError({"status": ["Only cancelled orders can be refunded"]})
        if not self.is_paid:
            raise ValidationError({"payment_status": ["Only captured payments can be refunded"]})

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.REFUNDED.value
        self.refunded_at = now
        self.updated_at = now
        self.raise_(OrderRefunded(order_id=str(self.id), amount=self.total_amount, refunded_at=now))
