"""Payment relay — the trusted server-side call that creates a gateway order.

The storefront never talks to the gateway with credentials. It (or the
initiation handler on its behalf) asks the relay for a gateway order, and
only the public key id ever leaves the server.
"""

import structlog
from protean.exceptions import ValidationError

from checkout.payment.gateway import get_gateway

logger = structlog.get_logger(__name__)

SUPPORTED_CURRENCIES = {"INR"}


def _validate(amount, currency, receipt_id):
    errors = {}
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        errors["amount"] = ["Amount must be a positive integer in minor units"]
    if currency not in SUPPORTED_CURRENCIES:
        errors["currency"] = [f"Unsupported currency: {currency}"]
    if not receipt_id:
        errors["receipt_id"] = ["Receipt id is required"]
    if errors:
        raise ValidationError(errors)


def relay_gateway_order(
    amount,
    currency,
    receipt_id,
    order_id=None,
    user_email=None,
    user_full_name=None,
    phone_number=None,
) -> dict:
    """Create a gateway order and return ``{orderId, amount, currency, receipt}``.

    Raises ``ValidationError`` for a bad amount or currency before any gateway
    call, and ``GatewayError`` when the gateway fails.
    """
    _validate(amount, currency, receipt_id)

    notes = {
        "order_id": order_id,
        "email": user_email,
        "name": user_full_name,
        "phone": phone_number,
    }
    gateway_order = get_gateway().create_order(
        amount=amount,
        currency=currency,
        receipt=str(receipt_id),
        notes={key: value for key, value in notes.items() if value},
    )

    logger.info(
        "Gateway order created",
        gateway_order_id=gateway_order.id,
        order_id=order_id,
        amount=amount,
        currency=currency,
    )
    return {
        "orderId": gateway_order.id,
        "amount": gateway_order.amount,
        "currency": gateway_order.currency,
        "receipt": gateway_order.receipt,
    }
