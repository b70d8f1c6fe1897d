"""Payment reconciliation — applies gateway outcomes to orders.

Three sources report outcomes: the hosted checkout's callbacks (success,
failure, dismissed), signed gateway webhooks, and the stale-payment sweep.
Client-reported success is trusted only after its signature is verified;
webhook and sweep outcomes come from the gateway itself and use
``ApplyCapturedPayment`` directly.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import PaymentVerificationError
from checkout.order.confirmation import settle_confirmed_order
from checkout.order.order import Order, OrderStatus
from checkout.payment.gateway import get_gateway

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class ConfirmPayment:
    """Success callback from the hosted checkout."""

    order_id = Identifier(required=True)
    gateway_order_id = String(required=True, max_length=255)
    gateway_payment_id = String(required=True, max_length=255)
    signature = String(required=True, max_length=255)


@checkout.command(part_of="Order")
class ApplyCapturedPayment:
    """A capture reported by the gateway (webhook or sweep)."""

    order_id = Identifier(required=True)
    gateway_order_id = String(required=True, max_length=255)
    gateway_payment_id = String(required=True, max_length=255)


@checkout.command(part_of="Order")
class RecordPaymentFailure:
    order_id = Identifier(required=True)
    error_description = String(max_length=500)
    gateway_order_id = String(max_length=255)
    gateway_payment_id = String(max_length=255)


@checkout.command(part_of="Order")
class ClosePaymentSession:
    order_id = Identifier(required=True)


def _apply_success(order, gateway_order_id, gateway_payment_id):
    if not order.record_payment_success(gateway_order_id, gateway_payment_id):
        logger.info("Payment already reconciled", order_id=str(order.id), gateway_payment_id=gateway_payment_id)
    elif order.status == OrderStatus.CANCELLED.value:
        logger.warning(
            "Payment captured on a cancelled order",
            order_id=str(order.id),
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
        )
    else:
        settle_confirmed_order(order)
        logger.info(
            "Payment reconciled",
            order_id=str(order.id),
            gateway_order_id=gateway_order_id,
            gateway_payment_id=gateway_payment_id,
        )


@checkout.command_handler(part_of=Order)
class ReconcilePaymentHandler:
    @handle(ConfirmPayment)
    def confirm_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        verified = get_gateway().verify_payment_signature(
            command.gateway_order_id,
            command.gateway_payment_id,
            command.signature,
        )
        if not verified:
            logger.warning(
                "Payment signature mismatch",
                order_id=str(order.id),
                gateway_order_id=command.gateway_order_id,
                gateway_payment_id=command.gateway_payment_id,
            )
            raise PaymentVerificationError()

        if order.gateway_order_id != command.gateway_order_id:
            logger.warning(
                "Payment for a different gateway order",
                order_id=str(order.id),
                expected=order.gateway_order_id,
                received=command.gateway_order_id,
            )
            raise PaymentVerificationError("Payment does not match this order")

        _apply_success(order, command.gateway_order_id, command.gateway_payment_id)
        repo.add(order)
        return order.status

    @handle(ApplyCapturedPayment)
    def apply_captured_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        _apply_success(order, command.gateway_order_id, command.gateway_payment_id)
        repo.add(order)
        return order.status

    @handle(RecordPaymentFailure)
    def record_payment_failure(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        reason = command.error_description or "Payment failed"

        if order.record_payment_failure(reason=reason, gateway_order_id=command.gateway_order_id):
            logger.info(
                "Payment failed",
                order_id=str(order.id),
                gateway_order_id=order.gateway_order_id,
                gateway_payment_id=command.gateway_payment_id,
            )
            repo.add(order)
        return order.failure_reason

    @handle(ClosePaymentSession)
    def close_payment_session(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.close_payment_session()
        repo.add(order)


def record_checkout_dismissed(order_id) -> Order:
    """The customer closed the hosted checkout. Nothing changes; they may retry."""
    order = current_domain.repository_for(Order).get(order_id)
    logger.info("Checkout dismissed", order_id=str(order.id), status=order.status)
    return order
