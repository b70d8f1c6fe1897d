"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing
- RazorpayGateway when PAYMENT_GATEWAY=razorpay (required in production)
"""

from checkout.config import check_production_payment_settings, get_payment_settings, is_production
from checkout.payment.gateway.fake_adapter import FakeGateway
from checkout.payment.gateway.port import PaymentGateway
from checkout.payment.gateway.razorpay_adapter import RazorpayGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, built from settings on first use."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_payment_settings()
        if is_production():
            check_production_payment_settings(settings)
        if settings.gateway == "razorpay":
            _current_gateway = RazorpayGateway(settings)
        else:
            _current_gateway = FakeGateway(settings)
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
