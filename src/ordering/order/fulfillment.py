"""Order fulfillment — commands and handler.

Moves an order forward through processing, shipment and delivery.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class MarkProcessing:
    """Signal that the shop has started preparing the order."""

    order_id = Identifier(required=True)


@ordering.command(part_of="Order")
class ShipOrder:
    """Hand the order to a courier."""

    order_id = Identifier(required=True)
    tracking_number = String(max_length=255)
    estimated_delivery = String(max_length=10)  # ISO date string


@ordering.command(part_of="Order")
class DeliverOrder:
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=Order)
class FulfillOrderHandler:
    @handle(MarkProcessing)
    def mark_processing(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_processing()
        repo.add(order)

    @handle(ShipOrder)
    def ship_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.ship(
            tracking_number=command.tracking_number,
            estimated_delivery=command.estimated_delivery,
        )
        repo.add(order)

    @handle(DeliverOrder)
    def deliver_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.deliver()
        repo.add(order)
