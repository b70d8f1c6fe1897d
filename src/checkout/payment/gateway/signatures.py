"""HMAC-SHA256 signatures used by the hosted checkout and by webhooks."""

import hashlib
import hmac


def payment_signature(gateway_order_id: str, payment_id: str, secret: str) -> str:
    message = f"{gateway_order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def webhook_signature(payload: bytes, secret: str) -> str:
    if isinstance(payload, str):
        payload = payload.encode()
    return hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()


def signatures_match(expected: str, received: str | None) -> bool:
    return bool(received) and hmac.compare_digest(expected, received)
