"""Runtime settings for checkout pricing and payments.

Business constants and gateway credentials are read from the environment once
and cached. Tests override them with ``set_pricing_rules()`` /
``set_payment_settings()`` and restore defaults with the matching ``reset_*``.
"""

import os
from dataclasses import dataclass
from decimal import Decimal

from protean.exceptions import ConfigurationError


@dataclass(frozen=True)
class PricingRules:
    """Shipping, tax and currency rules applied to every cart and order."""

    free_shipping_threshold: Decimal = Decimal("499")
    flat_shipping_fee: Decimal = Decimal("49")
    tax_rate: Decimal = Decimal("0.18")
    currency: str = "INR"

    @classmethod
    def from_env(cls) -> "PricingRules":
        return cls(
            free_shipping_threshold=Decimal(os.environ.get("FREE_SHIPPING_THRESHOLD", "499")),
            flat_shipping_fee=Decimal(os.environ.get("FLAT_SHIPPING_FEE", "49")),
            tax_rate=Decimal(os.environ.get("TAX_RATE", "0.18")),
            currency=os.environ.get("STORE_CURRENCY", "INR"),
        )


@dataclass(frozen=True)
class PaymentSettings:
    """Gateway selection, credentials and timeouts."""

    gateway: str = "fake"
    key_id: str = "rzp_test_key"
    key_secret: str = "test-key-secret"
    webhook_secret: str = "test-webhook-secret"
    store_name: str = "Storefront"
    theme_color: str = "#3B82F6"
    session_timeout_minutes: int = 30
    http_timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "PaymentSettings":
        return cls(
            gateway=os.environ.get("PAYMENT_GATEWAY", "fake"),
            key_id=os.environ.get("RAZORPAY_KEY_ID", "rzp_test_key"),
            key_secret=os.environ.get("RAZORPAY_KEY_SECRET", "test-key-secret"),
            webhook_secret=os.environ.get("RAZORPAY_WEBHOOK_SECRET", "test-webhook-secret"),
            store_name=os.environ.get("STORE_NAME", "Storefront"),
            theme_color=os.environ.get("CHECKOUT_THEME_COLOR", "#3B82F6"),
            session_timeout_minutes=int(os.environ.get("PAYMENT_SESSION_TIMEOUT_MINUTES", "30")),
            http_timeout_seconds=float(os.environ.get("GATEWAY_HTTP_TIMEOUT_SECONDS", "10")),
        )


_pricing_rules: PricingRules | None = None
_payment_settings: PaymentSettings | None = None


def get_pricing_rules() -> PricingRules:
    global _pricing_rules
    if _pricing_rules is None:
        _pricing_rules = PricingRules.from_env()
    return _pricing_rules


def set_pricing_rules(rules: PricingRules) -> None:
    global _pricing_rules
    _pricing_rules = rules


def reset_pricing_rules() -> None:
    global _pricing_rules
    _pricing_rules = None


def get_payment_settings() -> PaymentSettings:
    global _payment_settings
    if _payment_settings is None:
        _payment_settings = PaymentSettings.from_env()
    return _payment_settings


def set_payment_settings(settings: PaymentSettings) -> None:
    global _payment_settings
    _payment_settings = settings


def reset_payment_settings() -> None:
    global _payment_settings
    _payment_settings = None


def is_production() -> bool:
    return os.environ.get("PROTEAN_ENV") == "production"


def check_production_payment_settings(settings: PaymentSettings) -> None:
    """Refuse the fake gateway and the built-in test secrets in production."""
    if settings.gateway != "razorpay":
        raise ConfigurationError(f"PAYMENT_GATEWAY must be 'razorpay' in production, got '{settings.gateway}'")

    defaults = PaymentSettings()
    for name, env_var in (("key_secret", "RAZORPAY_KEY_SECRET"), ("webhook_secret", "RAZORPAY_WEBHOOK_SECRET")):
        value = getattr(settings, name)
        if not value or value == getattr(defaults, name):
            raise ConfigurationError(f"{env_var} must be set in production")
