"""Gateway webhook processing — command and handler.

The route verifies the signature over the raw body before this runs. Events
are matched to orders by gateway order id; unknown orders and outcomes the
order can no longer accept are logged and acknowledged so the gateway stops
redelivering them.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import Order
from checkout.payment.reconciliation import ApplyCapturedPayment, RecordPaymentFailure

logger = structlog.get_logger(__name__)

CAPTURE_EVENTS = {"payment.captured", "order.paid"}
FAILURE_EVENTS = {"payment.failed"}


@checkout.command(part_of="Order")
class ProcessGatewayWebhook:
    event_type = String(required=True, max_length=100)
    gateway_order_id = String(max_length=255)
    gateway_payment_id = String(max_length=255)
    error_description = String(max_length=500)


def parse_webhook(payload: dict) -> dict:
    """Flatten a Razorpay-style ``{event, payload: {payment, order}}`` body."""
    body = payload.get("payload") or {}
    payment = (body.get("payment") or {}).get("entity") or {}
    order = (body.get("order") or {}).get("entity") or {}
    return {
        "event_type": payload.get("event", ""),
        "gateway_order_id": payment.get("order_id") or order.get("id"),
        "gateway_payment_id": payment.get("id"),
        "error_description": payment.get("error_description"),
    }


def find_order_by_gateway_order_id(gateway_order_id) -> Order | None:
    if not gateway_order_id:
        return None
    results = current_domain.repository_for(Order)._dao.query.filter(gateway_order_id=gateway_order_id).all().items
    return results[0] if results else None


@checkout.command_handler(part_of=Order)
class ProcessWebhookHandler:
    @handle(ProcessGatewayWebhook)
    def process_webhook(self, command):
        if command.event_type not in CAPTURE_EVENTS | FAILURE_EVENTS:
            logger.info("Webhook event ignored", webhook_event=command.event_type)
            return "ignored"

        order = find_order_by_gateway_order_id(command.gateway_order_id)
        if order is None:
            logger.warning(
                "Webhook for unknown gateway order",
                webhook_event=command.event_type,
                gateway_order_id=command.gateway_order_id,
            )
            return "ignored"

        if command.event_type in CAPTURE_EVENTS:
            if not command.gateway_payment_id:
                logger.warning("Capture webhook without payment id", gateway_order_id=command.gateway_order_id)
                return "ignored"
            next_command = ApplyCapturedPayment(
                order_id=str(order.id),
                gateway_order_id=command.gateway_order_id,
                gateway_payment_id=command.gateway_payment_id,
            )
        else:
            next_command = RecordPaymentFailure(
                order_id=str(order.id),
                error_description=command.error_description,
                gateway_order_id=command.gateway_order_id,
                gateway_payment_id=command.gateway_payment_id,
            )

        try:
            current_domain.process(next_command, asynchronous=False)
        except ValidationError as exc:
            logger.warning(
                "Webhook outcome not applicable",
                webhook_event=command.event_type,
                order_id=str(order.id),
                error=str(exc),
            )
            return "ignored"

        return "processed"
