"""Order cancellation and refund — commands and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import CancellationActor, Order

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500, default="Cancelled by customer")
    cancelled_by = String(max_length=50, default=CancellationActor.CUSTOMER.value)


@checkout.command(part_of="Order")
class RefundOrder:
    order_id = Identifier(required=True)


@checkout.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        # Reloaded inside the unit of work; a stale version fails on commit
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(
            reason=command.reason,
            cancelled_by=command.cancelled_by,
        )
        repo.add(order)
        logger.info("Order cancelled", order_id=str(order.id), cancelled_by=command.cancelled_by)

    @handle(RefundOrder)
    def refund_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_refunded()
        repo.add(order)
        logger.info("Order refunded", order_id=str(order.id), amount=order.total_amount)
