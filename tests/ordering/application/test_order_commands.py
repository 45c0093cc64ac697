"""Application tests for order cancellation, fulfillment, payment and admin commands."""

import pytest
from ordering.checkout.checkout import CheckoutRequest, checkout
from ordering.errors import ConflictError
from ordering.order.administration import UpdateOrderStatus
from ordering.order.cancellation import CancelOrder
from ordering.order.fulfillment import DeliverOrder, MarkProcessing, ShipOrder
from ordering.order.order import Order, OrderStatus, PaymentStatus
from ordering.order.payment import ConfirmPayment, RecordPaymentFailure, RefundPayment
from protean import current_domain
from protean.exceptions import ObjectNotFoundError


@pytest.fixture()
def order(cart_items, shipping_address):
    return checkout(
        CheckoutRequest(
            customer_id="cust-001",
            items=cart_items,
            shipping_address=shipping_address,
            payment_method="upi",
            shipping_charges=50.0,
        )
    )


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _reload(order):
    return current_domain.repository_for(Order).get(order.id)


class TestCancelOrder:
    def test_owner_cancels(self, order):
        _process(CancelOrder(order_id=order.id, reason="Wrong address", cancelled_by="customer", customer_id="cust-001"))
        stored = _reload(order)
        assert stored.status == OrderStatus.CANCELLED.value
        assert stored.cancellation_reason == "Wrong address"

    def test_other_customer_sees_not_found(self, order):
        with pytest.raises(ObjectNotFoundError):
            _process(CancelOrder(order_id=order.id, cancelled_by="customer", customer_id="cust-999"))
        assert _reload(order).status == OrderStatus.PENDING.value

    def test_admin_cancels_any_order(self, order):
        _process(CancelOrder(order_id=order.id, reason="Out of stock", cancelled_by="admin"))
        assert _reload(order).cancelled_by == "admin"

    def test_processing_order_cannot_be_cancelled(self, order):
        _process(MarkProcessing(order_id=order.id))
        with pytest.raises(ConflictError):
            _process(CancelOrder(order_id=order.id, cancelled_by="customer", customer_id="cust-001"))

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            _process(CancelOrder(order_id="missing", cancelled_by="admin"))


class TestFulfillment:
    def test_ship_and_deliver(self, order):
        _process(MarkProcessing(order_id=order.id))
        _process(ShipOrder(order_id=order.id, tracking_number="DTDC123", estimated_delivery="2026-11-02"))
        _process(DeliverOrder(order_id=order.id))

        stored = _reload(order)
        assert stored.status == OrderStatus.DELIVERED.value
        assert stored.tracking_number == "DTDC123"
        assert stored.delivered_at is not None

    def test_cannot_skip_processing(self, order):
        with pytest.raises(ConflictError):
            _process(ShipOrder(order_id=order.id, tracking_number="DTDC123"))
        assert _reload(order).status == OrderStatus.PENDING.value


class TestUpdateOrderStatus:
    def test_admin_moves_order_forward_with_notes(self, order):
        _process(UpdateOrderStatus(order_id=order.id, status="processing", admin_notes="Packed by Ravi"))
        stored = _reload(order)
        assert stored.status == OrderStatus.PROCESSING.value
        assert "Packed by Ravi" in stored.admin_notes

    def test_shipping_records_tracking(self, order):
        _process(UpdateOrderStatus(order_id=order.id, status="processing"))
        _process(UpdateOrderStatus(order_id=order.id, status="shipped", tracking_number="BLUEDART9"))
        assert _reload(order).tracking_number == "BLUEDART9"

    def test_admin_cancel_uses_notes_as_reason(self, order):
        _process(UpdateOrderStatus(order_id=order.id, status="cancelled", admin_notes="Customer called"))
        stored = _reload(order)
        assert stored.status == OrderStatus.CANCELLED.value
        assert stored.cancelled_by == "admin"
        assert stored.cancellation_reason == "Customer called"

    def test_back_to_pending_rejected(self, order):
        _process(UpdateOrderStatus(order_id=order.id, status="processing"))
        with pytest.raises(ConflictError):
            _process(UpdateOrderStatus(order_id=order.id, status="pending"))
        assert _reload(order).status == OrderStatus.PROCESSING.value

    def test_skipping_ahead_rejected(self, order):
        with pytest.raises(ConflictError):
            _process(UpdateOrderStatus(order_id=order.id, status="delivered"))


class TestPaymentCommands:
    def test_confirm_then_refund(self, order):
        _process(ConfirmPayment(order_id=order.id, payment_reference="pay_QX81"))
        assert _reload(order).payment_status == PaymentStatus.PAID.value

        _process(RefundPayment(order_id=order.id, refund_amount=200.0))
        stored = _reload(order)
        assert stored.payment_status == PaymentStatus.REFUNDED.value
        assert stored.refund_amount == 200.0

    def test_record_failure(self, order):
        _process(RecordPaymentFailure(order_id=order.id, reason="UPI timeout"))
        assert _reload(order).payment_status == PaymentStatus.FAILED.value

    def test_refund_of_unpaid_order_rejected(self, order):
        with pytest.raises(ConflictError):
            _process(RefundPayment(order_id=order.id))
