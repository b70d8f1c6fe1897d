"""Configurable fake payment gateway for development and testing.

This adapter simulates the gateway without any external calls. Orders and
payment attempts are kept in memory, and signatures are real HMACs over the
configured secrets, so the verification path is exercised end to end:
- Manual API testing via /payments/gateway/configure
- Automated tests that play the hosted checkout with ``capture()``/``fail()``
- Development without real gateway credentials
"""

from uuid import uuid4

from checkout.config import PaymentSettings, get_payment_settings
from checkout.errors import GatewayError
from checkout.payment.gateway.port import GatewayOrder, GatewayPayment, PaymentGateway
from checkout.payment.gateway.signatures import (
    payment_signature,
    signatures_match,
    webhook_signature,
)


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, settings: PaymentSettings | None = None) -> None:
        self.settings = settings or get_payment_settings()
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []
        self.orders: dict[str, GatewayOrder] = {}
        self.payments: dict[str, list[GatewayPayment]] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Gateway unavailable") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> GatewayOrder:
        self.calls.append(
            {
                "method": "create_order",
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            }
        )

        if not self.should_succeed:
            raise GatewayError(detail=self.failure_reason)

        order = GatewayOrder(
            id=f"order_fake_{uuid4().hex[:14]}",
            amount=amount,
            currency=currency,
            receipt=receipt,
        )
        self.orders[order.id] = order
        self.payments[order.id] = []
        return order

    def fetch_order_payments(self, gateway_order_id: str) -> list[GatewayPayment]:
        self.calls.append({"method": "fetch_order_payments", "gateway_order_id": gateway_order_id})

        if not self.should_succeed:
            raise GatewayError(detail=self.failure_reason)
        return list(self.payments.get(gateway_order_id, []))

    def verify_payment_signature(self, gateway_order_id: str, payment_id: str, signature: str) -> bool:
        expected = payment_signature(gateway_order_id, payment_id, self.settings.key_secret)
        return signatures_match(expected, signature)

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        expected = webhook_signature(payload, self.settings.webhook_secret)
        return signatures_match(expected, signature)

    # -------------------------------------------------------------------
    # Hosted checkout simulation
    # -------------------------------------------------------------------
    def capture(self, gateway_order_id: str) -> tuple[str, str]:
        """Record a captured payment; returns (payment_id, signature) as the hosted UI would."""
        order = self.orders[gateway_order_id]
        payment = GatewayPayment(
            id=f"pay_fake_{uuid4().hex[:14]}",
            order_id=gateway_order_id,
            status="captured",
            amount=order.amount,
        )
        self.payments[gateway_order_id].append(payment)
        return payment.id, self.sign_payment(gateway_order_id, payment.id)

    def fail(self, gateway_order_id: str, description: str = "Payment declined by bank") -> str:
        """Record a failed payment attempt; returns its payment id."""
        order = self.orders[gateway_order_id]
        payment = GatewayPayment(
            id=f"pay_fake_{uuid4().hex[:14]}",
            order_id=gateway_order_id,
            status="failed",
            amount=order.amount,
            error_description=description,
        )
        self.payments[gateway_order_id].append(payment)
        return payment.id

    def sign_payment(self, gateway_order_id: str, payment_id: str) -> str:
        return payment_signature(gateway_order_id, payment_id, self.settings.key_secret)

    def sign_webhook(self, payload: bytes) -> str:
        return webhook_signature(payload, self.settings.webhook_secret)
