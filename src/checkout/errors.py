"""Checkout error types that are not plain field validation failures.

``ValidationError`` from Protean remains the error for bad input and invalid
transitions. The types below are mapped to their own HTTP statuses by the
application's exception handlers.
"""

from protean.exceptions import ValidationError


class GatewayError(Exception):
    """The payment relay or the gateway behind it failed.

    ``detail`` is for operators and is logged; it is never returned to the
    customer.
    """

    def __init__(self, message: str = "Payment service is unavailable", detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class PaymentVerificationError(ValidationError):
    """A payment callback or webhook failed signature verification."""

    def __init__(self, message: str = "Payment verification failed"):
        super().__init__({"signature": [message]})


class PersistenceError(Exception):
    """An order could not be written."""

    def __init__(self, message: str = "Failed to place order"):
        self.message = message
        super().__init__(message)
