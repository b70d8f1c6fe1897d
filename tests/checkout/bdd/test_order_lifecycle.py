"""BDD tests for the order lifecycle."""

from protean.exceptions import ValidationError
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/order_lifecycle.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the order is marked processing")
def mark_processing(order, error):
    try:
        order.mark_processing()
    except ValidationError as exc:
        error["exc"] = exc


@when("the order is marked shipped")
def mark_shipped(order, error):
    try:
        order.mark_shipped()
    except ValidationError as exc:
        error["exc"] = exc


@when("the order is marked delivered")
def mark_delivered(order, error):
    try:
        order.mark_delivered()
    except ValidationError as exc:
        error["exc"] = exc


@when(parsers.cfparse('the order is cancelled with reason "{reason}" by "{actor}"'))
def cancel_order(order, reason, actor, error):
    try:
        order.cancel(reason, actor)
    except ValidationError as exc:
        error["exc"] = exc


@when("the order is refunded")
def refund_order(order, error):
    try:
        order.mark_refunded()
    except ValidationError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the cancellation reason is "{reason}"'))
def cancellation_reason_is(order, reason):
    assert order.cancellation_reason == reason
