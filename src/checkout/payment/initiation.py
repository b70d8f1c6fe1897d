"""Payment initiation — command and handler.

Creates (or reuses) a gateway order for a pending online-payment order and
returns the options the hosted checkout is opened with. A relay failure
leaves the order untouched and surfaces as ``GatewayError``; the customer
retries by initiating again.
"""

from datetime import UTC, datetime, timedelta

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.config import get_payment_settings
from checkout.domain import checkout
from checkout.order.order import Order
from checkout.payment.relay import relay_gateway_order

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class InitiatePayment:
    order_id = Identifier(required=True)
    customer_email = String(max_length=255)
    customer_name = String(max_length=255)
    customer_phone = String(max_length=20)


def checkout_options(order, name=None, email=None, phone=None) -> dict:
    """Options for the gateway's hosted checkout. Contains no secret."""
    settings = get_payment_settings()
    return {
        "key": settings.key_id,
        "amount": order.amount_in_minor_units,
        "currency": order.currency,
        "name": settings.store_name,
        "description": f"Order {order.order_number}",
        "order_id": order.gateway_order_id,
        "prefill": {
            "name": name or "",
            "email": email or "",
            "contact": phone or "",
        },
        "theme": {"color": settings.theme_color},
    }


@checkout.command_handler(part_of=Order)
class InitiatePaymentHandler:
    @handle(InitiatePayment)
    def initiate_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.assert_payable()
        payer = {
            "name": command.customer_name,
            "email": command.customer_email,
            "phone": command.customer_phone,
        }

        if order.has_open_payment_session():
            logger.info(
                "Reusing open payment session",
                order_id=str(order.id),
                gateway_order_id=order.gateway_order_id,
            )
            return checkout_options(order, **payer)

        relay = relay_gateway_order(
            amount=order.amount_in_minor_units,
            currency=order.currency,
            receipt_id=str(order.id),
            order_id=str(order.id),
            user_email=command.customer_email,
            user_full_name=command.customer_name,
            phone_number=command.customer_phone,
        )

        timeout = get_payment_settings().session_timeout_minutes
        order.open_payment_session(
            gateway_order_id=relay["orderId"],
            expires_at=datetime.now(UTC) + timedelta(minutes=timeout),
        )
        repo.add(order)

        return checkout_options(order, **payer)
