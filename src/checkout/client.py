"""Thin storefront-side caller for the checkout API.

Holds no business rules: pricing, coupon checks and payment verification all
happen on the server. It only guards against double submission, with an
in-flight flag per client and a request id sent as the idempotency key, so a
retried placement after a dropped response returns the same order.
"""

from uuid import uuid4

import httpx
import structlog

logger = structlog.get_logger(__name__)


class CheckoutInProgress(Exception):
    """A placement is already running on this client."""


class CheckoutError(Exception):
    def __init__(self, status_code: int, body: dict | None = None, idempotency_key: str | None = None):
        self.status_code = status_code
        self.body = body or {}
        self.idempotency_key = idempotency_key
        super().__init__(f"Checkout request failed with status {status_code}")


class CheckoutClient:
    def __init__(self, http: httpx.Client):
        self.http = http
        self._in_flight = False
        # Key of a placement whose response never arrived; reused by the next attempt
        self.pending_idempotency_key: str | None = None

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _send(self, method, url, idempotency_key=None, **kwargs) -> dict:
        response = self.http.request(method, url, **kwargs)
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {"error": response.text}
            raise CheckoutError(response.status_code, body, idempotency_key=idempotency_key)
        return response.json()

    def place_order(
        self,
        customer_id,
        cart_id,
        payment_method,
        address_id=None,
        shipping_address=None,
        idempotency_key=None,
    ) -> dict:
        """Place an order. Pass the previous ``idempotency_key`` to retry safely.

        Without one, the key of an attempt that failed in transit is reused, so
        calling again after a timeout cannot create a second order.
        """
        if self._in_flight:
            raise CheckoutInProgress("An order is already being placed")

        idempotency_key = idempotency_key or self.pending_idempotency_key or str(uuid4())
        payload = {
            "customer_id": customer_id,
            "cart_id": cart_id,
            "payment_method": payment_method,
            "idempotency_key": idempotency_key,
        }
        if address_id:
            payload["address_id"] = address_id
        if shipping_address:
            payload["shipping_address"] = shipping_address

        self._in_flight = True
        self.pending_idempotency_key = idempotency_key
        try:
            result = self._send("POST", "/orders", idempotency_key=idempotency_key, json=payload)
        except httpx.TransportError:
            logger.warning("Order submission lost in transit", idempotency_key=idempotency_key)
            raise
        except CheckoutError:
            # The server answered; this key is settled
            self.pending_idempotency_key = None
            raise
        finally:
            self._in_flight = False

        self.pending_idempotency_key = None
        logger.info("Order submitted", order_id=result.get("order_id"), idempotency_key=idempotency_key)
        return {**result, "idempotency_key": idempotency_key}

    def start_payment(self, order_id, email=None, name=None, phone=None) -> dict:
        """Hosted-checkout options for an order placed with online payment."""
        return self._send(
            "POST",
            f"/orders/{order_id}/payment",
            json={"customer_email": email, "customer_name": name, "customer_phone": phone},
        )

    def payment_succeeded(self, order_id, gateway_order_id, gateway_payment_id, signature) -> dict:
        return self._send(
            "POST",
            f"/orders/{order_id}/payment/success",
            json={
                "gateway_order_id": gateway_order_id,
                "gateway_payment_id": gateway_payment_id,
                "signature": signature,
            },
        )

    def payment_failed(self, order_id, error_description, metadata=None) -> dict:
        return self._send(
            "POST",
            f"/orders/{order_id}/payment/failure",
            json={"error_description": error_description, "metadata": metadata or {}},
        )

    def payment_dismissed(self, order_id) -> dict:
        return self._send("POST", f"/orders/{order_id}/payment/cancel")
