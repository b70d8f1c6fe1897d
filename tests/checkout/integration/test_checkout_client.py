"""Tests for the storefront checkout client over the in-process API."""

import json

import httpx
import pytest
from checkout.client import CheckoutClient, CheckoutError, CheckoutInProgress


@pytest.fixture()
def storefront(client):
    return CheckoutClient(client)


class TestPlaceOrder:
    def test_places_order_with_generated_key(self, storefront, cart_id, address_id):
        result = storefront.place_order("cust-001", cart_id, "cod", address_id=address_id)

        assert result["status"] == "confirmed"
        assert result["idempotency_key"]
        assert storefront.in_flight is False

    def test_retry_with_same_key_returns_same_order(self, storefront, cart_id, address_id):
        first = storefront.place_order("cust-001", cart_id, "razorpay", address_id=address_id)
        retry = storefront.place_order(
            "cust-001",
            cart_id,
            "razorpay",
            address_id=address_id,
            idempotency_key=first["idempotency_key"],
        )
        assert retry["order_id"] == first["order_id"]

    def test_rejects_while_in_flight(self, storefront, cart_id, address_id):
        storefront._in_flight = True
        with pytest.raises(CheckoutInProgress):
            storefront.place_order("cust-001", cart_id, "cod", address_id=address_id)

    def test_error_clears_in_flight(self, storefront, cart_id):
        with pytest.raises(CheckoutError) as exc:
            storefront.place_order("cust-001", cart_id, "cod")

        assert exc.value.status_code == 400
        assert storefront.in_flight is False


class TestOnlinePayment:
    def test_pay_and_confirm(self, storefront, gateway, cart_id, address_id):
        order = storefront.place_order("cust-001", cart_id, "razorpay", address_id=address_id)
        options = storefront.start_payment(order["order_id"], email="asha@example.in", name="Asha Verma")
        payment_id, signature = gateway.capture(options["order_id"])

        state = storefront.payment_succeeded(order["order_id"], options["order_id"], payment_id, signature)
        assert state == {"status": "confirmed", "payment_status": "paid"}

    def test_failure_and_dismiss(self, storefront, cart_id, address_id):
        order = storefront.place_order("cust-001", cart_id, "razorpay", address_id=address_id)
        storefront.start_payment(order["order_id"])

        assert storefront.payment_dismissed(order["order_id"])["status"] == "pending"
        failed = storefront.payment_failed(order["order_id"], "UPI request expired")
        assert failed["error"] == "UPI request expired"


class TestDroppedResponse:
    def _transport(self, outcomes, seen):
        def handler(request):
            seen.append(json.loads(request.content)["idempotency_key"])
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        return httpx.MockTransport(handler)

    def test_timeout_keeps_key_for_retry(self):
        seen = []
        outcomes = [
            httpx.ReadTimeout("response lost"),
            httpx.Response(201, json={"order_id": "ord-1", "status": "pending"}),
        ]
        storefront = CheckoutClient(httpx.Client(base_url="http://checkout", transport=self._transport(outcomes, seen)))

        with pytest.raises(httpx.ReadTimeout):
            storefront.place_order("cust-001", "cart-1", "razorpay", address_id="addr-1")
        assert storefront.pending_idempotency_key == seen[0]
        assert storefront.in_flight is False

        result = storefront.place_order("cust-001", "cart-1", "razorpay", address_id="addr-1")

        assert seen[1] == seen[0]
        assert result["idempotency_key"] == seen[0]
        assert storefront.pending_idempotency_key is None

    def test_server_error_carries_key(self):
        seen = []
        outcomes = [httpx.Response(500, json={"error": "Failed to place order"})]
        storefront = CheckoutClient(httpx.Client(base_url="http://checkout", transport=self._transport(outcomes, seen)))

        with pytest.raises(CheckoutError) as exc:
            storefront.place_order("cust-001", "cart-1", "cod", address_id="addr-1")

        assert exc.value.status_code == 500
        assert exc.value.idempotency_key == seen[0]
