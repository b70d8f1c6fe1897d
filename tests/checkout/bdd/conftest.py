"""Shared BDD fixtures and step definitions for the Checkout domain."""

from datetime import UTC, datetime, timedelta

import pytest
from checkout.order.order import Order
from checkout.pricing.engine import price
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


@pytest.fixture()
def now():
    return datetime.now(UTC)


def _order(shipping_address, payment_method):
    return Order.create(
        customer_id="cust-001",
        items_data=[
            {
                "product_id": "prod-001",
                "product_name": "Block Print Bedsheet",
                "quantity": 1,
                "unit_price": 1299.0,
            }
        ],
        shipping_address=shipping_address,
        breakdown=price(1299.0),
        payment_method=payment_method,
        idempotency_key="idem-bdd-001",
    )


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a cash on delivery order was placed", target_fixture="order")
def cod_order(shipping_address):
    order = _order(shipping_address, "cod")
    order.confirm_cash_on_delivery()
    return order


@given("an online order is awaiting payment", target_fixture="order")
def online_order(shipping_address):
    order = _order(shipping_address, "razorpay")
    order.open_payment_session("order_gw_bdd", datetime.now(UTC) + timedelta(minutes=30))
    return order


@given("the payment was captured", target_fixture="order")
def paid_order(order):
    order.record_payment_success("order_gw_bdd", "pay_bdd")
    return order


@given("the payment failed", target_fixture="order")
def failed_order(order):
    order.record_payment_failure("Card declined")
    return order


@given("the order is processing", target_fixture="order")
def processing_order(order):
    order.mark_processing()
    return order


@given("the order was shipped", target_fixture="order")
def shipped_order(order):
    order.mark_shipped()
    return order


@given("the order was delivered", target_fixture="order")
def delivered_order(order):
    order.mark_delivered()
    return order


@given("the order was cancelled", target_fixture="order")
def cancelled_order(order):
    order.cancel("Changed my mind", "Customer")
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def payment_status_is(order, status):
    assert order.payment_status == status


@then(parsers.cfparse('the action fails with "{message}"'))
def action_fails_with(error, message):
    assert isinstance(error["exc"], ValidationError)
    assert message in str(error["exc"].messages)
