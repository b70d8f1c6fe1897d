"""Order fulfillment — admin-driven status advances."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import Order


@checkout.command(part_of="Order")
class MarkProcessing:
    order_id = Identifier(required=True)


@checkout.command(part_of="Order")
class MarkShipped:
    order_id = Identifier(required=True)


@checkout.command(part_of="Order")
class MarkDelivered:
    order_id = Identifier(required=True)


@checkout.command_handler(part_of=Order)
class FulfillmentHandler:
    @handle(MarkProcessing)
    def mark_processing(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_processing()
        repo.add(order)

    @handle(MarkShipped)
    def mark_shipped(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_shipped()
        repo.add(order)

    @handle(MarkDelivered)
    def mark_delivered(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_delivered()
        repo.add(order)
