"""Razorpay payment gateway adapter.

Talks to the Razorpay Orders API over HTTPS with basic auth
(key id / key secret). Signature checks are local HMACs and make no request.
"""

import httpx
import structlog

from checkout.config import PaymentSettings, get_payment_settings
from checkout.errors import GatewayError
from checkout.payment.gateway.port import GatewayOrder, GatewayPayment, PaymentGateway
from checkout.payment.gateway.signatures import (
    payment_signature,
    signatures_match,
    webhook_signature,
)

logger = structlog.get_logger(__name__)

RAZORPAY_API_URL = "https://api.razorpay.com/v1"


class RazorpayGateway(PaymentGateway):
    """Production Razorpay adapter."""

    def __init__(self, settings: PaymentSettings | None = None, client: httpx.Client | None = None) -> None:
        self.settings = settings or get_payment_settings()
        self.client = client or httpx.Client(
            base_url=RAZORPAY_API_URL,
            auth=(self.settings.key_id, self.settings.key_secret),
            timeout=self.settings.http_timeout_seconds,
        )

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Gateway rejected request",
                path=path,
                status_code=exc.response.status_code,
                body=exc.response.text[:500],
            )
            raise GatewayError(detail=f"{exc.response.status_code} from {path}") from exc
        except httpx.RequestError as exc:
            logger.error("Gateway unreachable", path=path, error=str(exc))
            raise GatewayError(detail=str(exc)) from exc
        return response.json()

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict | None = None,
    ) -> GatewayOrder:
        data = self._request(
            "POST",
            "/orders",
            json={
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            },
        )
        return GatewayOrder(
            id=data["id"],
            amount=data["amount"],
            currency=data["currency"],
            receipt=data.get("receipt") or receipt,
            status=data.get("status", "created"),
        )

    def fetch_order_payments(self, gateway_order_id: str) -> list[GatewayPayment]:
        data = self._request("GET", f"/orders/{gateway_order_id}/payments")
        return [
            GatewayPayment(
                id=item["id"],
                order_id=item.get("order_id") or gateway_order_id,
                status=item["status"],
                amount=item.get("amount", 0),
                error_description=item.get("error_description"),
                raw=item,
            )
            for item in data.get("items", [])
        ]

    def verify_payment_signature(self, gateway_order_id: str, payment_id: str, signature: str) -> bool:
        expected = payment_signature(gateway_order_id, payment_id, self.settings.key_secret)
        return signatures_match(expected, signature)

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        expected = webhook_signature(payload, self.settings.webhook_secret)
        return signatures_match(expected, signature)
