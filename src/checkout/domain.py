"""Checkout bounded context — pricing, coupons, orders and payment reconciliation.

Runs behind the trusted server boundary: carts are priced, coupons validated,
orders persisted and payments verified here, never in the storefront client.
"""

from protean.domain import Domain

from checkout.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
checkout = Domain(name="checkout")
