"""Checkout load test scenarios.

Stateful SequentialTaskSet journeys. Cash-on-delivery orders run through to
delivery; online orders complete through the signed success callback; coupon
orders apply a fresh coupon before placement; double submits must resolve to
a single order.
"""

import hashlib
import hmac
import os
import uuid

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    address_data,
    cart_data,
    cart_line_data,
    coupon_data,
    customer_id,
    payer_data,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import CheckoutState

# Test-mode secret shared with the server's FakeGateway
KEY_SECRET = os.environ.get("RAZORPAY_KEY_SECRET", "test-key-secret")


class _CartBuilder(SequentialTaskSet):
    """Shared first steps: cart with two lines and a saved address."""

    def on_start(self):
        self.state = CheckoutState(customer_id=customer_id())

    @task
    def create_cart(self):
        with self.client.post(
            "/carts",
            json=cart_data(self.state.customer_id),
            catch_response=True,
            name="POST /carts",
        ) as resp:
            if resp.status_code == 201:
                self.state.cart_id = resp.json()["cart_id"]
            else:
                resp.failure(f"Create cart failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def add_lines(self):
        for _ in range(2):
            with self.client.post(
                f"/carts/{self.state.cart_id}/items",
                json=cart_line_data(),
                catch_response=True,
                name="POST /carts/{id}/items",
            ) as resp:
                if resp.status_code == 201:
                    self.state.line_ids.append(resp.json()["line_id"])
                else:
                    resp.failure(f"Add line failed: {resp.status_code} — {extract_error_detail(resp)}")
                    self.interrupt()

    @task
    def view_cart(self):
        with self.client.get(
            f"/carts/{self.state.cart_id}",
            catch_response=True,
            name="GET /carts/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"View cart failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def save_address(self):
        with self.client.post(
            f"/customers/{self.state.customer_id}/addresses",
            json=address_data(),
            catch_response=True,
            name="POST /customers/{id}/addresses",
        ) as resp:
            if resp.status_code == 201:
                self.state.address_id = resp.json()["address_id"]
            else:
                resp.failure(f"Save address failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    def place(self, payment_method):
        self.state.idempotency_key = self.state.idempotency_key or str(uuid.uuid4())
        with self.client.post(
            "/orders",
            json={
                "customer_id": self.state.customer_id,
                "cart_id": self.state.cart_id,
                "address_id": self.state.address_id,
                "payment_method": payment_method,
                "idempotency_key": self.state.idempotency_key,
            },
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                body = resp.json()
                self.state.order_id = body["order_id"]
                self.state.current_status = body["status"]
                return body
            resp.failure(f"Place order failed: {resp.status_code} — {extract_error_detail(resp)}")
            self.interrupt()


class CashOnDeliveryJourney(_CartBuilder):
    """Cart -> Address -> Place COD order (confirmed) -> Processing -> Ship -> Deliver."""

    @task
    def place_order(self):
        self.place("cod")

    @task
    def advance(self):
        for step, status in (("processing", "processing"), ("ship", "shipped"), ("deliver", "delivered")):
            with self.client.put(
                f"/orders/{self.state.order_id}/{step}",
                catch_response=True,
                name=f"PUT /orders/{{id}}/{step}",
            ) as resp:
                if resp.status_code == 200:
                    self.state.current_status = status
                else:
                    resp.failure(f"{step} failed: {resp.status_code} — {extract_error_detail(resp)}")
                    self.interrupt()

    @task
    def done(self):
        self.interrupt()


class OnlinePaymentJourney(_CartBuilder):
    """Cart -> Address -> Place online order -> Initiate payment -> Signed success callback."""

    @task
    def place_order(self):
        self.place("razorpay")

    @task
    def initiate_payment(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/payment",
            json=payer_data(),
            catch_response=True,
            name="POST /orders/{id}/payment",
        ) as resp:
            if resp.status_code == 200:
                self.state.gateway_order_id = resp.json()["order_id"]
            else:
                resp.failure(f"Initiate payment failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def payment_success(self):
        payment_id = f"pay_lt_{uuid.uuid4().hex[:14]}"
        signature = hmac.new(
            KEY_SECRET.encode(),
            f"{self.state.gateway_order_id}|{payment_id}".encode(),
            hashlib.sha256,
        ).hexdigest()
        with self.client.post(
            f"/orders/{self.state.order_id}/payment/success",
            json={
                "gateway_order_id": self.state.gateway_order_id,
                "gateway_payment_id": payment_id,
                "signature": signature,
            },
            catch_response=True,
            name="POST /orders/{id}/payment/success",
        ) as resp:
            if resp.status_code == 200 and resp.json()["payment_status"] == "paid":
                self.state.current_status = "confirmed"
            else:
                resp.failure(f"Payment success failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CouponJourney(_CartBuilder):
    """Cart -> Address -> Admin creates coupon -> Apply to cart -> Priced cart -> Place COD order."""

    @task
    def apply_coupon(self):
        coupon = coupon_data()
        with self.client.post(
            "/coupons",
            json=coupon,
            catch_response=True,
            name="POST /coupons",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Create coupon failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

        with self.client.post(
            f"/carts/{self.state.cart_id}/coupon",
            json={"coupon_code": coupon["code"].lower()},
            catch_response=True,
            name="POST /carts/{id}/coupon",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Apply coupon failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def priced_cart(self):
        with self.client.get(
            f"/carts/{self.state.cart_id}",
            catch_response=True,
            name="GET /carts/{id} (with coupon)",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"View cart failed: {resp.status_code} — {extract_error_detail(resp)}")
            elif resp.json()["pricing"]["discount_amount"] <= 0:
                resp.failure("Coupon discount missing from cart pricing")

    @task
    def place_order(self):
        self.place("cod")

    @task
    def done(self):
        self.interrupt()


class DoubleSubmitJourney(_CartBuilder):
    """Places the same order twice with one idempotency key; both must return one order id."""

    @task
    def place_twice(self):
        first = self.place("cod")
        with self.client.post(
            "/orders",
            json={
                "customer_id": self.state.customer_id,
                "cart_id": self.state.cart_id,
                "address_id": self.state.address_id,
                "payment_method": "cod",
                "idempotency_key": self.state.idempotency_key,
            },
            catch_response=True,
            name="POST /orders (duplicate)",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Duplicate placement failed: {resp.status_code} — {extract_error_detail(resp)}")
            elif resp.json()["order_id"] != first["order_id"]:
                resp.failure("Duplicate placement created a second order")

    @task
    def done(self):
        self.interrupt()


class CheckoutUser(HttpUser):
    """Checkout traffic: mostly online payments, some COD, occasional double submits."""

    wait_time = between(1, 3)
    tasks = {
        OnlinePaymentJourney: 6,
        CashOnDeliveryJourney: 3,
        CouponJourney: 2,
        DoubleSubmitJourney: 1,
    }
