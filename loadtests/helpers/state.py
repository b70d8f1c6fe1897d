"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state — no cross-user sharing.
State tracks entity IDs returned by creation endpoints so follow-up
operations can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class CheckoutState:
    """Tracks state for a single simulated checkout."""

    customer_id: str | None = None
    cart_id: str | None = None
    line_ids: list[str] = field(default_factory=list)
    address_id: str | None = None
    order_id: str | None = None
    idempotency_key: str | None = None
    gateway_order_id: str | None = None
    current_status: str = "pending"
