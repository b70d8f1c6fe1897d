"""Application tests for order placement."""

import json

import pytest
from checkout.address.management import AddAddress
from checkout.cart.cart import CartStatus, ShoppingCart
from checkout.cart.management import AddToCart, ApplyCouponToCart, CreateCart
from checkout.coupon.management import CreateCoupon, DeactivateCoupon
from checkout.coupon.validation import CouponRejected, find_coupon
from checkout.errors import PersistenceError
from checkout.order import placement
from checkout.order.order import Order, OrderStatus, PaymentStatus
from checkout.order.placement import PlaceOrder
from checkout.pricing.engine import price
from protean import UnitOfWork
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain


def _cart_with(customer_id="cust-001", lines=((799.0, 1),)):
    cart_id = current_domain.process(CreateCart(customer_id=customer_id), asynchronous=False)
    for i, (unit_price, quantity) in enumerate(lines, start=1):
        current_domain.process(
            AddToCart(
                cart_id=cart_id,
                product_id=f"prod-{i:03d}",
                name=f"Product {i}",
                sku=f"SKU-{i:03d}",
                unit_price=unit_price,
                quantity=quantity,
            ),
            asynchronous=False,
        )
    return cart_id


def _save_address(shipping_address, customer_id="cust-001"):
    return current_domain.process(AddAddress(customer_id=customer_id, **shipping_address), asynchronous=False)


def _place(cart_id, address_id=None, customer_id="cust-001", payment_method="cod", key="idem-001", **extra):
    return current_domain.process(
        PlaceOrder(
            customer_id=customer_id,
            cart_id=cart_id,
            payment_method=payment_method,
            idempotency_key=key,
            address_id=address_id,
            **extra,
        ),
        asynchronous=False,
    )


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _cart(cart_id):
    return current_domain.repository_for(ShoppingCart).get(cart_id)


class TestCashOnDeliveryPlacement:
    def test_order_confirmed_with_server_side_amounts(self, shipping_address):
        cart_id = _cart_with(lines=((250.0, 2),))
        order_id = _place(cart_id, _save_address(shipping_address))

        order = _order(order_id)
        assert order.status == OrderStatus.CONFIRMED.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.subtotal == 500.0
        assert order.shipping_amount == 0.0
        assert order.tax_amount == 90.0
        assert order.total_amount == 590.0

    def test_cart_converted(self, shipping_address):
        cart_id = _cart_with()
        order_id = _place(cart_id, _save_address(shipping_address))

        cart = _cart(cart_id)
        assert cart.status == CartStatus.CONVERTED.value
        assert cart.converted_order_id == order_id
        assert cart.is_empty

    def test_coupon_redeemed_once(self, shipping_address):
        current_domain.process(
            CreateCoupon(code="SAVE10", coupon_type="percentage", value=10),
            asynchronous=False,
        )
        cart_id = _cart_with(lines=((1000.0, 1),))
        current_domain.process(ApplyCouponToCart(cart_id=cart_id, coupon_code="save10"), asynchronous=False)
        order_id = _place(cart_id, _save_address(shipping_address))

        order = _order(order_id)
        assert order.coupon_code == "SAVE10"
        assert order.discount_amount == 100.0
        assert order.total_amount == 1000 + 180 - 100
        assert find_coupon("SAVE10").used_count == 1

    def test_item_snapshot_matches_cart(self, shipping_address):
        lines = ((19.99, 3), (0.01, 7), (1299.0, 1), (45.5, 2))
        cart_id = _cart_with(lines=lines)
        order_id = _place(cart_id, _save_address(shipping_address))

        order = _order(order_id)
        assert len(order.items) == 4
        assert round(sum(item.total_price for item in order.items), 2) == order.subtotal == 1450.04
        assert {item.product_sku for item in order.items} == {"SKU-001", "SKU-002", "SKU-003", "SKU-004"}


class TestOnlinePaymentPlacement:
    def test_order_awaits_payment(self, shipping_address):
        cart_id = _cart_with()
        order_id = _place(cart_id, _save_address(shipping_address), payment_method="razorpay")

        order = _order(order_id)
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.confirmed_at is None

    def test_cart_stays_active_until_payment(self, shipping_address):
        cart_id = _cart_with()
        _place(cart_id, _save_address(shipping_address), payment_method="razorpay")
        assert _cart(cart_id).status == CartStatus.ACTIVE.value

    def test_coupon_not_redeemed_until_payment(self, shipping_address):
        current_domain.process(
            CreateCoupon(code="SAVE10", coupon_type="percentage", value=10),
            asynchronous=False,
        )
        cart_id = _cart_with()
        current_domain.process(ApplyCouponToCart(cart_id=cart_id, coupon_code="SAVE10"), asynchronous=False)
        _place(cart_id, _save_address(shipping_address), payment_method="razorpay")
        assert find_coupon("SAVE10").used_count == 0


class TestIdempotency:
    def test_same_key_returns_same_order(self, shipping_address):
        cart_id = _cart_with()
        address_id = _save_address(shipping_address)

        first = _place(cart_id, address_id, payment_method="razorpay", key="idem-dup")
        second = _place(cart_id, address_id, payment_method="razorpay", key="idem-dup")

        assert first == second
        orders = current_domain.repository_for(Order)._dao.query.all().items
        assert len(orders) == 1

    def test_same_key_after_cod_conversion(self, shipping_address):
        cart_id = _cart_with()
        address_id = _save_address(shipping_address)

        first = _place(cart_id, address_id, key="idem-cod")
        assert _place(cart_id, address_id, key="idem-cod") == first

    def test_new_key_on_converted_cart_rejected(self, shipping_address):
        cart_id = _cart_with()
        address_id = _save_address(shipping_address)
        _place(cart_id, address_id, key="idem-1")

        with pytest.raises(ValidationError) as exc:
            _place(cart_id, address_id, key="idem-2")
        assert "already been checked out" in str(exc.value)


class TestShippingAddress:
    def test_snapshot_from_address_book(self, shipping_address):
        cart_id = _cart_with()
        order_id = _place(cart_id, _save_address(shipping_address))
        assert _order(order_id).shipping_address.city == "Bengaluru"

    def test_inline_address(self, shipping_address):
        cart_id = _cart_with()
        order_id = _place(cart_id, shipping_address=json.dumps(shipping_address))
        assert _order(order_id).shipping_address.postal_code == "560001"

    def test_missing_address_rejected(self):
        cart_id = _cart_with()
        with pytest.raises(ValidationError) as exc:
            _place(cart_id)
        assert exc.value.messages == {"address_id": ["Please select a delivery address"]}

    def test_address_of_another_customer_rejected(self, shipping_address):
        other_address = _save_address(shipping_address, customer_id="cust-999")
        cart_id = _cart_with()
        with pytest.raises(ValidationError):
            _place(cart_id, other_address)


class TestPlacementRejections:
    def test_empty_cart(self, shipping_address):
        cart_id = current_domain.process(CreateCart(customer_id="cust-001"), asynchronous=False)
        with pytest.raises(ValidationError) as exc:
            _place(cart_id, _save_address(shipping_address))
        assert "Your cart is empty" in str(exc.value)

    def test_cart_of_another_customer(self, shipping_address):
        cart_id = _cart_with(customer_id="cust-999")
        with pytest.raises(ValidationError):
            _place(cart_id, _save_address(shipping_address))

    def test_unsupported_payment_method(self, shipping_address):
        cart_id = _cart_with()
        with pytest.raises(ValidationError):
            _place(cart_id, _save_address(shipping_address), payment_method="wallet")

    def test_coupon_no_longer_valid(self, shipping_address):
        coupon_id = current_domain.process(
            CreateCoupon(code="SAVE10", coupon_type="percentage", value=10),
            asynchronous=False,
        )
        cart_id = _cart_with()
        current_domain.process(ApplyCouponToCart(cart_id=cart_id, coupon_code="SAVE10"), asynchronous=False)
        current_domain.process(DeactivateCoupon(coupon_id=coupon_id), asynchronous=False)

        with pytest.raises(CouponRejected):
            _place(cart_id, _save_address(shipping_address))
        assert current_domain.repository_for(Order)._dao.query.all().items == []

    def test_write_failure_surfaces_as_persistence_error(self, shipping_address, monkeypatch):
        def _broken(order):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(placement, "settle_confirmed_order", _broken)
        cart_id = _cart_with()

        with pytest.raises(PersistenceError) as exc:
            _place(cart_id, _save_address(shipping_address))
        assert exc.value.message == "Failed to place order"

    def test_commit_failure_surfaces_as_persistence_error(self, shipping_address, monkeypatch):
        cart_id = _cart_with()
        address_id = _save_address(shipping_address)

        class _FailingCommit(UnitOfWork):
            def commit(self):
                raise RuntimeError("connection reset during commit")

        monkeypatch.setattr(placement, "UnitOfWork", _FailingCommit)

        with pytest.raises(PersistenceError) as exc:
            _place(cart_id, address_id)
        assert exc.value.message == "Failed to place order"
        assert isinstance(exc.value.__cause__, RuntimeError)


class TestConcurrentPlacement:
    def test_key_taken_between_lookup_and_write_returns_existing_order(self, shipping_address, monkeypatch):
        cart_id = _cart_with()
        address_id = _save_address(shipping_address)
        first = _place(cart_id, address_id, payment_method="razorpay", key="idem-race")

        # The second request looked up the key before the first one committed
        lookup = placement.find_order_by_idempotency_key
        lookups = []

        def _missed_first_lookup(key):
            lookups.append(key)
            return None if len(lookups) == 1 else lookup(key)

        monkeypatch.setattr(placement, "find_order_by_idempotency_key", _missed_first_lookup)

        assert _place(cart_id, address_id, payment_method="razorpay", key="idem-race") == first
        assert len(current_domain.repository_for(Order)._dao.query.all().items) == 1

    def test_idempotency_key_is_unique_in_the_store(self, shipping_address):
        cart_id = _cart_with()
        address_id = _save_address(shipping_address)
        _place(cart_id, address_id, payment_method="razorpay", key="idem-unique")

        duplicate = Order.create(
            customer_id="cust-001",
            items_data=[{"product_id": "prod-001", "product_name": "Product 1", "quantity": 1, "unit_price": 799.0}],
            shipping_address=shipping_address,
            breakdown=price(799.0),
            payment_method="razorpay",
            idempotency_key="idem-unique",
        )
        with pytest.raises(ValidationError) as exc, UnitOfWork():
            current_domain.repository_for(Order).add(duplicate)
        assert "idempotency_key" in exc.value.messages
