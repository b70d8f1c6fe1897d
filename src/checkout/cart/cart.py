"""Shopping Cart aggregate — session-scoped selection of products before checkout.

The cart lives server-side and is addressed explicitly by id, so every
operation receives the cart it works on instead of reading ambient client
state. It is converted (emptied and closed) once its order is confirmed.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from checkout.cart.events import (
    CartCleared,
    CartConverted,
    CartCouponApplied,
    CartCouponRemoved,
    CartLineAdded,
    CartLineRemoved,
    CartQuantityUpdated,
)
from checkout.domain import checkout
from checkout.pricing.engine import line_total, subtotal_of


class CartStatus(Enum):
    ACTIVE = "active"
    CONVERTED = "converted"


@checkout.entity(part_of="ShoppingCart")
class CartLine:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    image = String(max_length=1000)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    stock_at_add_time = Integer(min_value=0)
    added_at = DateTime()

    @property
    def line_total(self) -> float:
        return line_total(self.unit_price, self.quantity)


@checkout.aggregate
class ShoppingCart:
    customer_id = Identifier()
    session_id = String(max_length=255)
    lines = HasMany(CartLine)
    coupon_code = String(max_length=50)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    converted_order_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def line_quantity_within_known_stock(self):
        for line in self.lines or []:
            if line.stock_at_add_time is not None and line.quantity > line.stock_at_add_time:
                raise ValidationError({"quantity": [f"Only {line.stock_at_add_time} of {line.name} in stock"]})

    @classmethod
    def create(cls, customer_id=None, session_id=None):
        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            session_id=session_id,
            status=CartStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )

    @property
    def subtotal(self) -> float:
        return subtotal_of(self.lines or [])

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def _assert_active(self, action):
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise ValidationError({"status": [f"Cannot {action} a cart that has been checked out"]})

    @staticmethod
    def _assert_in_stock(name, quantity, stock):
        if stock is not None and quantity > stock:
            raise ValidationError({"quantity": [f"Only {stock} of {name} in stock"]})

    def _find_line(self, line_id):
        line = next((ln for ln in self.lines if str(ln.id) == str(line_id)), None)
        if line is None:
            raise ValidationError({"line_id": ["Item not found in cart"]})
        return line

    # -------------------------------------------------------------------
    # Lines
    # -------------------------------------------------------------------
    def add_line(self, product_id, name, unit_price, quantity=1, sku=None, image=None, stock=None):
        """Add a product, or increase its quantity if it is already in the cart."""
        self._assert_active("add items to")
        now = datetime.now(UTC)

        existing = next((ln for ln in self.lines if str(ln.product_id) == str(product_id)), None)
        limit = stock if stock is not None else (existing.stock_at_add_time if existing else None)
        self._assert_in_stock(name, (existing.quantity if existing else 0) + quantity, limit)

        if existing:
            with atomic_change(self):
                if stock is not None:
                    existing.stock_at_add_time = stock
                existing.quantity += quantity
            line = existing
        else:
            line = CartLine(
                product_id=product_id,
                name=name,
                sku=sku,
                image=image,
                unit_price=unit_price,
                quantity=quantity,
                stock_at_add_time=stock,
                added_at=now,
            )
            self.add_lines(line)

        self.updated_at = now
        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                line_id=str(line.id),
                product_id=str(product_id),
                quantity=quantity,
                unit_price=line.unit_price,
            )
        )
        return line

    def update_quantity(self, line_id, new_quantity):
        self._assert_active("update")
        if new_quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        line = self._find_line(line_id)
        self._assert_in_stock(line.name, new_quantity, line.stock_at_add_time)
        previous_quantity = line.quantity
        line.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                line_id=str(line_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_line(self, line_id):
        self._assert_active("remove items from")
        line = self._find_line(line_id)
        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartLineRemoved(cart_id=str(self.id), line_id=str(line_id)))

    def clear(self):
        self._assert_active("clear")
        removed = len(self.lines)
        for line in list(self.lines):
            self.remove_lines(line)
        self.coupon_code = None
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), lines_removed=removed))

    # -------------------------------------------------------------------
    # Coupon
    # -------------------------------------------------------------------
    def apply_coupon(self, coupon_code):
        """Attach an already-validated coupon code, replacing any previous one."""
        self._assert_active("apply a coupon to")
        self.coupon_code = coupon_code
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCouponApplied(cart_id=str(self.id), coupon_code=coupon_code))

    def remove_coupon(self):
        self._assert_active("remove a coupon from")
        if not self.coupon_code:
            raise ValidationError({"coupon_code": ["No coupon applied"]})
        removed = self.coupon_code
        self.coupon_code = None
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=removed))

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def convert(self, order_id):
        """Close the cart once its order is confirmed. Repeat calls are no-ops."""
        if CartStatus(self.status) == CartStatus.CONVERTED:
            return

        for line in list(self.lines):
            self.remove_lines(line)
        self.coupon_code = None
        self.status = CartStatus.CONVERTED.value
        self.converted_order_id = order_id
        self.updated_at = datetime.now(UTC)

        self.raise_(CartConverted(cart_id=str(self.id), order_id=str(order_id)))
