"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the checkout domain's validation
rules and match the exact field names expected by the API's Pydantic
request schemas.
"""

import random
import uuid

from faker import Faker

fake = Faker("en_IN")


def customer_id() -> str:
    return f"cust-lt-{uuid.uuid4().hex[:8]}"


def cart_data(owner: str | None = None) -> dict:
    """Generate CreateCartRequest payload."""
    return {
        "customer_id": owner,
        "session_id": None if owner else f"sess-{uuid.uuid4().hex[:12]}",
    }


def cart_line_data(min_price: int = 99, max_price: int = 1999) -> dict:
    """Generate AddToCartRequest payload with a stock level above the quantity."""
    quantity = random.randint(1, 3)
    return {
        "product_id": f"prod-{uuid.uuid4().hex[:8]}",
        "name": fake.catch_phrase()[:255],
        "sku": f"SKU-{uuid.uuid4().hex[:6].upper()}",
        "image": fake.image_url(),
        "unit_price": float(random.randint(min_price, max_price)),
        "quantity": quantity,
        "stock": quantity + random.randint(0, 20),
    }


def address_data() -> dict:
    """Generate AddAddressRequest / inline shipping address payload."""
    return {
        "first_name": fake.first_name()[:100],
        "last_name": fake.last_name()[:100],
        "address_line_1": fake.street_address()[:255],
        "address_line_2": None,
        "city": fake.city()[:100],
        "state": fake.state()[:100],
        "postal_code": fake.postcode()[:20],
        "phone": f"9{random.randint(100000000, 999999999)}",
    }


def payer_data() -> dict:
    """Generate InitiatePaymentRequest payload."""
    return {
        "customer_email": fake.email(),
        "customer_name": fake.name(),
        "customer_phone": f"9{random.randint(100000000, 999999999)}",
    }


def coupon_data() -> dict:
    """Generate CreateCouponRequest payload for a percentage coupon."""
    return {
        "code": f"LT{uuid.uuid4().hex[:8].upper()}",
        "coupon_type": "percentage",
        "value": random.choice([5, 10, 15, 20]),
        "maximum_discount": 200,
        "usage_limit": 100000,
    }
