"""Pricing engine — the single source of order arithmetic.

Cart display, the checkout summary and order persistence all call ``price()``
so that what the customer sees is exactly what gets stored.

    shipping = 0 if subtotal > threshold else flat fee
    tax      = round(subtotal * rate), half-up to a whole currency unit
    total    = subtotal + shipping + tax - discount, never below zero

The applied discount is capped at ``subtotal + shipping + tax`` so the stored
amounts always satisfy ``total = subtotal + shipping + tax - discount``.
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal

from protean.exceptions import ValidationError

from checkout.config import PricingRules, get_pricing_rules

_CENTS = Decimal("0.01")
_UNIT = Decimal("1")


def _money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(_CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: float
    shipping_amount: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    currency: str

    @property
    def free_shipping(self) -> bool:
        return self.shipping_amount == 0

    def as_dict(self) -> dict:
        return asdict(self)


def line_total(unit_price, quantity) -> float:
    return float(_money(Decimal(str(unit_price)) * quantity))


def subtotal_of(lines: Iterable) -> float:
    """Sum ``unit_price * quantity`` over objects exposing those attributes."""
    total = sum((_money(line.unit_price) * line.quantity for line in lines), Decimal("0"))
    return float(_money(total))


def price(subtotal, discount=0, rules: PricingRules | None = None) -> PriceBreakdown:
    rules = rules or get_pricing_rules()
    subtotal_d = _money(subtotal)
    discount_d = _money(discount)

    if subtotal_d < 0:
        raise ValidationError({"subtotal": ["Subtotal cannot be negative"]})
    if discount_d < 0:
        raise ValidationError({"discount": ["Discount cannot be negative"]})

    shipping = Decimal("0") if subtotal_d > rules.free_shipping_threshold else _money(rules.flat_shipping_fee)
    tax = (subtotal_d * rules.tax_rate).quantize(_UNIT, rounding=ROUND_HALF_UP)

    gross = subtotal_d + shipping + tax
    applied_discount = min(discount_d, gross)
    total = gross - applied_discount

    return PriceBreakdown(
        subtotal=float(subtotal_d),
        shipping_amount=float(shipping),
        tax_amount=float(tax),
        discount_amount=float(applied_discount),
        total_amount=float(total),
        currency=rules.currency,
    )


def to_minor_units(amount) -> int:
    """Convert a major-unit amount (rupees) to integer minor units (paise)."""
    return int((Decimal(str(amount)) * 100).quantize(_UNIT, rounding=ROUND_HALF_UP))
