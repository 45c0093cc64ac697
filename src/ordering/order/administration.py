"""Administrator status updates — command and handler.

The admin panel sets a target status directly. The handler maps it onto the
matching lifecycle transition, so the same guards apply as for the dedicated
commands.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import ConflictError
from ordering.order.order import CancellationActor, Order, OrderStatus

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    tracking_number = String(max_length=255)
    estimated_delivery = String(max_length=10)  # ISO date string
    admin_notes = Text()


@ordering.command_handler(part_of=Order)
class AdministerOrderHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status

        target = OrderStatus(command.status)
        if target == OrderStatus.PROCESSING:
            order.mark_processing()
        elif target == OrderStatus.SHIPPED:
            order.ship(
                tracking_number=command.tracking_number,
                estimated_delivery=command.estimated_delivery,
            )
        elif target == OrderStatus.DELIVERED:
            order.deliver()
        elif target == OrderStatus.CANCELLED:
            order.cancel(reason=command.admin_notes, cancelled_by=CancellationActor.ADMIN.value)
        else:
            raise ConflictError({"status": [f"Cannot transition from {previous} to {target.value}"]})

        if command.admin_notes:
            order.add_admin_notes(command.admin_notes)
        repo.add(order)

        logger.info(
            "Order status updated by administrator",
            order_id=str(order.id),
            from_status=previous,
            to_status=order.status,
        )
