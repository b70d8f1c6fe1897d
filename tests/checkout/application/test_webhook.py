"""Application tests for gateway webhook processing."""

from checkout.address.management import AddAddress
from checkout.cart.management import AddToCart, CreateCart
from checkout.order.cancellation import CancelOrder
from checkout.order.order import Order, OrderStatus, PaymentStatus
from checkout.order.placement import PlaceOrder
from checkout.payment.initiation import InitiatePayment
from checkout.payment.reconciliation import ConfirmPayment
from checkout.payment.webhook import ProcessGatewayWebhook, parse_webhook
from protean.utils.globals import current_domain


def _pending_online_order(shipping_address):
    cart_id = current_domain.process(CreateCart(customer_id="cust-001"), asynchronous=False)
    current_domain.process(
        AddToCart(cart_id=cart_id, product_id="prod-001", name="Handloom Dupatta", unit_price=899.0, quantity=1),
        asynchronous=False,
    )
    address_id = current_domain.process(AddAddress(customer_id="cust-001", **shipping_address), asynchronous=False)
    order_id = current_domain.process(
        PlaceOrder(
            customer_id="cust-001",
            cart_id=cart_id,
            payment_method="razorpay",
            idempotency_key="idem-wh",
            address_id=address_id,
        ),
        asynchronous=False,
    )
    options = current_domain.process(InitiatePayment(order_id=order_id), asynchronous=False)
    return order_id, options["order_id"]


def _webhook(event_type, gateway_order_id, gateway_payment_id=None, error_description=None):
    return current_domain.process(
        ProcessGatewayWebhook(
            event_type=event_type,
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
            error_description=error_description,
        ),
        asynchronous=False,
    )


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


class TestParseWebhook:
    def test_payment_event(self):
        payload = {
            "event": "payment.failed",
            "payload": {
                "payment": {
                    "entity": {
                        "id": "pay_123",
                        "order_id": "order_abc",
                        "error_description": "Insufficient funds",
                    }
                }
            },
        }
        assert parse_webhook(payload) == {
            "event_type": "payment.failed",
            "gateway_order_id": "order_abc",
            "gateway_payment_id": "pay_123",
            "error_description": "Insufficient funds",
        }

    def test_order_paid_event_uses_order_entity(self):
        payload = {
            "event": "order.paid",
            "payload": {"order": {"entity": {"id": "order_abc"}}},
        }
        parsed = parse_webhook(payload)
        assert parsed["gateway_order_id"] == "order_abc"
        assert parsed["gateway_payment_id"] is None

    def test_empty_payload(self):
        assert parse_webhook({}) == {
            "event_type": "",
            "gateway_order_id": None,
            "gateway_payment_id": None,
            "error_description": None,
        }


class TestProcessWebhook:
    def test_capture_marks_order_paid(self, gateway, shipping_address):
        order_id, gateway_order_id = _pending_online_order(shipping_address)
        payment_id, _ = gateway.capture(gateway_order_id)

        assert _webhook("payment.captured", gateway_order_id, payment_id) == "processed"

        order = _order(order_id)
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.payment_status == PaymentStatus.PAID.value

    def test_capture_after_callback_is_a_no_op(self, gateway, shipping_address):
        order_id, gateway_order_id = _pending_online_order(shipping_address)
        payment_id, signature = gateway.capture(gateway_order_id)
        current_domain.process(
            ConfirmPayment(
                order_id=order_id,
                gateway_order_id=gateway_order_id,
                gateway_payment_id=payment_id,
                signature=signature,
            ),
            asynchronous=False,
        )

        assert _webhook("payment.captured", gateway_order_id, payment_id) == "processed"
        assert _order(order_id).payment_status == PaymentStatus.PAID.value

    def test_failure_marks_order_failed(self, gateway, shipping_address):
        order_id, gateway_order_id = _pending_online_order(shipping_address)

        result = _webhook("payment.failed", gateway_order_id, "pay_x", "Card expired")

        order = _order(order_id)
        assert result == "processed"
        assert order.status == OrderStatus.FAILED.value
        assert order.failure_reason == "Card expired"

    def test_late_failure_after_payment_ignored(self, gateway, shipping_address):
        order_id, gateway_order_id = _pending_online_order(shipping_address)
        payment_id, _ = gateway.capture(gateway_order_id)
        _webhook("payment.captured", gateway_order_id, payment_id)

        assert _webhook("payment.failed", gateway_order_id, "pay_late", "Timeout") == "ignored"
        assert _order(order_id).payment_status == PaymentStatus.PAID.value

    def test_unknown_gateway_order_ignored(self, gateway):
        assert _webhook("payment.captured", "order_unknown", "pay_1") == "ignored"

    def test_unsupported_event_ignored(self, gateway, shipping_address):
        order_id, gateway_order_id = _pending_online_order(shipping_address)
        assert _webhook("refund.created", gateway_order_id, "pay_1") == "ignored"
        assert _order(order_id).status == OrderStatus.PENDING.value

    def test_capture_without_payment_id_ignored(self, gateway, shipping_address):
        order_id, gateway_order_id = _pending_online_order(shipping_address)
        assert _webhook("order.paid", gateway_order_id) == "ignored"
        assert _order(order_id).payment_status == PaymentStatus.PENDING.value

    def test_capture_after_failed_attempt_confirms_order(self, gateway, shipping_address):
        order_id, gateway_order_id = _pending_online_order(shipping_address)
        failed_payment = gateway.fail(gateway_order_id, "Authentication failed")
        _webhook("payment.failed", gateway_order_id, failed_payment, "Authentication failed")

        payment_id, _ = gateway.capture(gateway_order_id)

        assert _webhook("payment.captured", gateway_order_id, payment_id) == "processed"
        order = _order(order_id)
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.payment_status == PaymentStatus.PAID.value

    def test_failure_on_cancelled_order_ignored(self, gateway, shipping_address):
        order_id, gateway_order_id = _pending_online_order(shipping_address)
        current_domain.process(CancelOrder(order_id=order_id), asynchronous=False)

        assert _webhook("payment.failed", gateway_order_id, "pay_x", "Timeout") == "ignored"
        assert _order(order_id).status == OrderStatus.CANCELLED.value
