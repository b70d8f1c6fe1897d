"""Order placement — command and handler.

The cart is re-priced here, on the server, with the same pricing engine and
coupon validator the cart view uses. Client-side totals are never trusted.
Placing twice with the same idempotency key returns the first order.
"""

import json

import structlog
from protean import UnitOfWork, handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.address.address_book import ADDRESS_FIELDS, address_book_for
from checkout.cart.cart import CartStatus, ShoppingCart
from checkout.cart.summary import summarize
from checkout.domain import checkout
from checkout.errors import PersistenceError
from checkout.order.confirmation import settle_confirmed_order
from checkout.order.order import Order, PaymentMethod

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    payment_method = String(required=True, max_length=20)
    idempotency_key = String(required=True, max_length=255)
    address_id = Identifier()
    shipping_address = Text()  # JSON object, used when no saved address is given


def find_order_by_idempotency_key(key) -> Order | None:
    results = current_domain.repository_for(Order)._dao.query.filter(idempotency_key=key).all().items
    return results[0] if results else None


def _resolve_shipping_address(command) -> dict:
    if command.address_id:
        book = address_book_for(command.customer_id)
        address = None
        if book is not None:
            address = next((a for a in book.addresses if str(a.id) == str(command.address_id)), None)
        if address is None:
            raise ValidationError({"address_id": ["Please select a delivery address"]})
        return address.snapshot()

    if command.shipping_address:
        try:
            data = json.loads(command.shipping_address)
        except json.JSONDecodeError as exc:
            raise ValidationError({"shipping_address": ["Shipping address is not valid JSON"]}) from exc
        return {name: data.get(name) for name in ADDRESS_FIELDS}

    raise ValidationError({"address_id": ["Please select a delivery address"]})


def _load_cart(command) -> ShoppingCart:
    cart = current_domain.repository_for(ShoppingCart).get(command.cart_id)
    if cart.customer_id and str(cart.customer_id) != str(command.customer_id):
        raise ValidationError({"cart_id": ["Cart does not belong to this customer"]})
    if CartStatus(cart.status) != CartStatus.ACTIVE:
        raise ValidationError({"cart_id": ["This cart has already been checked out"]})
    if cart.is_empty:
        raise ValidationError({"cart_id": ["Your cart is empty"]})
    return cart


def _replayed(existing, key) -> str:
    logger.info(
        "Duplicate order placement ignored",
        order_id=str(existing.id),
        idempotency_key=key,
    )
    return str(existing.id)


def _write(order) -> None:
    # Commits on leaving the block, inside the caller's try
    with UnitOfWork():
        current_domain.repository_for(Order).add(order)
        if order.confirmed_at is not None:
            settle_confirmed_order(order)


@checkout.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        existing = find_order_by_idempotency_key(command.idempotency_key)
        if existing is not None:
            return _replayed(existing, command.idempotency_key)

        cart = _load_cart(command)
        shipping_address = _resolve_shipping_address(command)
        summary = summarize(cart, customer_id=command.customer_id, strict=True)

        order = Order.create(
            customer_id=command.customer_id,
            items_data=[
                {
                    "product_id": str(line.product_id),
                    "product_name": line.name,
                    "product_sku": line.sku,
                    "product_image": line.image,
                    "quantity": line.quantity,
                    "unit_price": line.unit_price,
                }
                for line in cart.lines
            ],
            shipping_address=shipping_address,
            breakdown=summary.breakdown,
            payment_method=command.payment_method,
            idempotency_key=command.idempotency_key,
            coupon_code=summary.coupon_code,
            cart_id=str(cart.id),
        )

        if command.payment_method == PaymentMethod.COD.value:
            order.confirm_cash_on_delivery()

        try:
            _write(order)
        except ValidationError as exc:
            # A concurrent placement with the same key committed first
            if "idempotency_key" in exc.messages:
                existing = find_order_by_idempotency_key(command.idempotency_key)
                if existing is not None:
                    return _replayed(existing, command.idempotency_key)
            raise
        except Exception as exc:
            existing = find_order_by_idempotency_key(command.idempotency_key)
            if existing is not None:
                return _replayed(existing, command.idempotency_key)
            logger.exception(
                "Order write failed",
                customer_id=str(command.customer_id),
                cart_id=str(command.cart_id),
                error=str(exc),
            )
            raise PersistenceError() from exc

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(command.customer_id),
            payment_method=order.payment_method,
            total_amount=order.total_amount,
            item_count=len(order.items),
        )
        return str(order.id)
