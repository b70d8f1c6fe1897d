"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and RazorpayGateway
(production) without changing any domain or application code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class GatewayOrder:
    """An order created on the gateway; the customer pays against its id."""

    id: str
    amount: int
    currency: str
    receipt: str
    status: str = "created"


@dataclass(frozen=True)
class GatewayPayment:
    """A payment attempt made against a gateway order."""

    id: str
    order_id: str
    status: str  # created, authorized, captured, refunded, failed
    amount: int = 0
    error_description: str | None = None
    raw: dict = field(default_factory=dict, compare=False)

    @property
    def captured(self) -> bool:
        return self.status == "captured"

    @property
    def failed(self) -> bool:
        return self.status == "failed"


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> GatewayOrder:
        """Create a gateway order for ``amount`` minor units. Raises GatewayError."""
        ...

    @abstractmethod
    def fetch_order_payments(self, gateway_order_id: str) -> list[GatewayPayment]:
        """List payment attempts for a gateway order. Raises GatewayError."""
        ...

    @abstractmethod
    def verify_payment_signature(
        self,
        gateway_order_id: str,
        payment_id: str,
        signature: str,
    ) -> bool:
        """Check the signature the hosted checkout returns on success."""
        ...

    @abstractmethod
    def verify_webhook_signature(
        self,
        payload: bytes,
        signature: str,
    ) -> bool:
        """Verify that a webhook payload is authentically from the gateway."""
        ...
