"""Order cancellation — command and handler."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import CancellationActor, Order


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = String(required=True, choices=CancellationActor)
    customer_id = Identifier()  # Required when a customer cancels


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        # Customers only see their own orders
        if command.cancelled_by == CancellationActor.CUSTOMER.value and not order.is_owned_by(command.customer_id):
            raise ObjectNotFoundError({"order": ["Order not found"]})

        order.cancel(reason=command.reason, cancelled_by=command.cancelled_by)
        repo.add(order)
