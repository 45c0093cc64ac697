"""Order aggregate (CQRS) — an order placed at checkout and its lifecycle.

The order snapshots its line items and shipping address when it is placed, so
later catalogue edits never alter historical orders. Two status fields evolve
independently:

Fulfillment (``status``):
    pending → processing → shipped → delivered
    pending → cancelled

Payment (``payment_status``):
    pending → paid → refunded
    pending → failed

Forward transitions are only allowed from the immediately preceding state and
cancellation only from ``pending``. Invalid transitions raise
``ConflictError`` and leave the order untouched.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.errors import ConflictError
from ordering.order.events import (
    OrderCancelled,
    OrderDelivered,
    OrderFlaggedForReconciliation,
    OrderPlaced,
    OrderProcessing,
    OrderShipped,
    PaymentConfirmed,
    PaymentFailed,
    PaymentRefunded,
)

ORDER_NUMBER_PREFIX = "THK"
CURRENCY = "INR"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    COD = "cod"
    CARD = "card"
    UPI = "upi"
    RAZORPAY = "razorpay"


class CancellationActor(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    SYSTEM = "system"


# Each forward step is only reachable from the state right before it
_NEXT_STATUS = {
    OrderStatus.PENDING: OrderStatus.PROCESSING,
    OrderStatus.PROCESSING: OrderStatus.SHIPPED,
    OrderStatus.SHIPPED: OrderStatus.DELIVERED,
}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.FAILED: set(),
    PaymentStatus.REFUNDED: set(),
}


def _money(value) -> float:
    return float(Decimal(str(value or 0)).quantize(Decimal("0.01")))


def format_order_number(sequence: int) -> str:
    return f"{ORDER_NUMBER_PREFIX}{sequence:06d}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    """Where the order is delivered, captured at checkout time."""

    full_name = String(required=True, max_length=100)
    phone = String(required=True, max_length=20)
    email = String(max_length=255)
    address = String(required=True, max_length=500)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    landmark = String(max_length=255)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A product snapshot: name, category and price as they were at checkout."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    category = String(max_length=100)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)

    @property
    def line_total(self) -> float:
        return _money(Decimal(str(self.unit_price)) * self.quantity)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.COD.value)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_reference = String(max_length=255)
    subtotal = Float(default=0.0, min_value=0.0)
    shipping_charges = Float(default=0.0, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    total_amount = Float(default=0.0, min_value=0.0)
    coupon_code = String(max_length=20)
    tracking_number = String(max_length=255)
    estimated_delivery = String(max_length=10)  # ISO date string
    notes = Text()
    admin_notes = Text()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(choices=CancellationActor)
    cancelled_at = DateTime()
    delivered_at = DateTime()
    refund_amount = Float(min_value=0.0)
    needs_reconciliation = Boolean(default=False)
    reconciliation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_match_components(self):
        expected = _money(
            Decimal(str(self.subtotal or 0))
            + Decimal(str(self.shipping_charges or 0))
            - Decimal(str(self.discount_amount or 0))
        )
        if abs(expected - (self.total_amount or 0)) >= 0.01:
            raise ValidationError(
                {"total_amount": ["Total must equal subtotal plus shipping charges minus discount"]}
            )

    @invariant.post
    def discount_cannot_exceed_order_value(self):
        if (self.discount_amount or 0) > (self.subtotal or 0) + (self.shipping_charges or 0):
            raise ValidationError({"discount_amount": ["Discount cannot exceed the order value"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        customer_id,
        items_data,
        shipping_address,
        payment_method=PaymentMethod.COD.value,
        shipping_charges=0.0,
        discount_amount=0.0,
        coupon_code=None,
        notes=None,
    ):
        """Create a pending order from checkout data.

        Args:
            order_number: Human-readable number, e.g. ``THK000001``.
            customer_id: The customer placing the order.
            items_data: List of dicts with product_id, name, category,
                        unit_price and quantity.
            shipping_address: Dict of ``ShippingAddress`` fields.
            discount_amount: Coupon discount already computed for the subtotal.
        """
        if not items_data:
            raise ValidationError({"items": ["Order must contain at least one item"]})

        now = datetime.now(UTC)
        items = [
            OrderItem(
                product_id=item["product_id"],
                name=item["name"],
                category=item.get("category"),
                unit_price=item["unit_price"],
                quantity=item["quantity"],
            )
            for item in items_data
        ]
        subtotal = _money(sum(Decimal(str(i.unit_price)) * i.quantity for i in items))
        shipping_charges = _money(shipping_charges)
        discount_amount = _money(discount_amount)
        total_amount = _money(Decimal(str(subtotal)) + Decimal(str(shipping_charges)) - Decimal(str(discount_amount)))

        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            items=items,
            shipping_address=ShippingAddress(**shipping_address),
            payment_method=payment_method,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            subtotal=subtotal,
            shipping_charges=shipping_charges,
            discount_amount=discount_amount,
            total_amount=total_amount,
            coupon_code=coupon_code,
            notes=notes,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                subtotal=subtotal,
                shipping_charges=shipping_charges,
                discount_amount=discount_amount,
                total_amount=total_amount,
                coupon_code=coupon_code,
                payment_method=order.payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    def is_owned_by(self, customer_id) -> bool:
        return str(self.customer_id) == str(customer_id)

    def _advance_to(self, target):
        current = OrderStatus(self.status)
        if _NEXT_STATUS.get(current) != target:
            raise ConflictError({"status": [f"Cannot transition from {current.value} to {target.value}"]})
        self.status = target.value

    def _assert_payment_transition(self, target):
        current = PaymentStatus(self.payment_status)
        if target not in _PAYMENT_TRANSITIONS[current]:
            raise ConflictError(
                {"payment_status": [f"Cannot change payment status from {current.value} to {target.value}"]}
            )

    # -------------------------------------------------------------------
    # Fulfillment lifecycle
    # -------------------------------------------------------------------
    def cancel(self, reason=None, cancelled_by=CancellationActor.CUSTOMER.value):
        """Cancel a pending order. Refunds are handled separately."""
        current = OrderStatus(self.status)
        if current == OrderStatus.CANCELLED:
            raise ConflictError({"status": ["Order is already cancelled"]})
        if current != OrderStatus.PENDING:
            raise ConflictError({"status": ["Order cannot be cancelled as it is already being processed"]})

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.cancelled_at = now
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                reason=reason,
                cancelled_by=cancelled_by,
                cancelled_at=now,
            )
        )

    def mark_processing(self):
        self._advance_to(OrderStatus.PROCESSING)
        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(OrderProcessing(order_id=str(self.id), started_at=now))

    def ship(self, tracking_number=None, estimated_delivery=None):
        self._advance_to(OrderStatus.SHIPPED)
        now = datetime.now(UTC)
        if tracking_number:
            self.tracking_number = tracking_number
        if estimated_delivery:
            self.estimated_delivery = estimated_delivery
        self.updated_at = now

        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                tracking_number=self.tracking_number,
                estimated_delivery=self.estimated_delivery,
                shipped_at=now,
            )
        )

    def deliver(self):
        self._advance_to(OrderStatus.DELIVERED)
        now = datetime.now(UTC)
        self.delivered_at = now
        self.updated_at = now
        self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=now))

    def add_admin_notes(self, admin_notes):
        self.admin_notes = admin_notes
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Payment lifecycle
    # -------------------------------------------------------------------
    def confirm_payment(self, payment_reference=None):
        self._assert_payment_transition(PaymentStatus.PAID)
        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        if payment_reference:
            self.payment_reference = payment_reference
        self.updated_at = now

        self.raise_(
            PaymentConfirmed(
                order_id=str(self.id),
                payment_reference=payment_reference,
                amount=self.total_amount,
                confirmed_at=now,
            )
        )

    def record_payment_failure(self, reason=None):
        self._assert_payment_transition(PaymentStatus.FAILED)
        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.FAILED.value
        self.updated_at = now
        self.raise_(PaymentFailed(order_id=str(self.id), reason=reason, failed_at=now))

    def refund(self, refund_amount=None):
        """Refund a paid order, in full unless a smaller amount is given."""
        self._assert_payment_transition(PaymentStatus.REFUNDED)
        amount = self.total_amount if refund_amount is None else _money(refund_amount)
        if amount > self.total_amount:
            raise ValidationError({"refund_amount": ["Refund amount cannot exceed the order total"]})

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.REFUNDED.value
        self.refund_amount = amount
        self.updated_at = now
        self.raise_(PaymentRefunded(order_id=str(self.id), refund_amount=amount, refunded_at=now))

    # -------------------------------------------------------------------
    # Checkout compensation
    # -------------------------------------------------------------------
    def flag_for_reconciliation(self, reason):
        """Mark an order whose coupon redemption failed after it was committed."""
        now = datetime.now(UTC)
        self.needs_reconciliation = True
        self.reconciliation_reason = reason
        self.updated_at = now

        self.raise_(
            OrderFlaggedForReconciliation(
                order_id=str(self.id),
                coupon_code=self.coupon_code,
                reason=reason,
                flagged_at=now,
            )
        )
