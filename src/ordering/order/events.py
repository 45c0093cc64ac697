"""Domain events for the Order aggregate.

Events are immutable facts raised alongside each state change. They are
dispatched through the domain's broker once the order is persisted.
"""

from protean.fields import DateTime, Float, Identifier, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A customer placed an order at checkout."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    subtotal = Float(required=True)
    shipping_charges = Float(required=True)
    discount_amount = Float(required=True)
    total_amount = Float(required=True)
    coupon_code = String()
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderProcessing:
    """The warehouse started preparing the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    started_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    tracking_number = String()
    estimated_delivery = String()  # ISO date string
    shipped_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled while still pending."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentConfirmed:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_reference = String()
    amount = Float(required=True)
    confirmed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    failed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    refund_amount = Float(required=True)
    refunded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderFlaggedForReconciliation:
    """The order was committed but its coupon could not be redeemed.

    Raised by the checkout compensation step so that staff can decide whether
    to honour the discount or contact the customer.
    """

    __version__ = 1

    order_id = Identifier(required=True)
    coupon_code = String()
    reason = String(required=True)
    flagged_at = DateTime(required=True)
