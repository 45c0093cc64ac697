"""Tests for Order payment status transitions."""

import pytest
from ordering.errors import ConflictError
from ordering.order.events import PaymentConfirmed, PaymentFailed, PaymentRefunded
from ordering.order.order import Order, OrderStatus, PaymentMethod, PaymentStatus
from protean.exceptions import ValidationError


@pytest.fixture()
def order(cart_items, shipping_address):
    order = Order.place(
        order_number="THK000001",
        customer_id="cust-001",
        items_data=cart_items,
        shipping_address=shipping_address,
        payment_method=PaymentMethod.UPI.value,
        shipping_charges=50.0,
    )
    order._events.clear()
    return order


class TestPaymentConfirmation:
    def test_confirm_payment(self, order):
        order.confirm_payment(payment_reference="pay_QX81")
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.payment_reference == "pay_QX81"
        confirmed = [e for e in order._events if isinstance(e, PaymentConfirmed)]
        assert confirmed[0].amount == 648.0

    def test_payment_is_independent_of_fulfillment(self, order):
        order.mark_processing()
        order.confirm_payment()
        assert order.status == OrderStatus.PROCESSING.value
        assert order.payment_status == PaymentStatus.PAID.value

    def test_cannot_confirm_twice(self, order):
        order.confirm_payment()
        with pytest.raises(ConflictError):
            order.confirm_payment()


class TestPaymentFailure:
    def test_record_failure(self, order):
        order.record_payment_failure(reason="Card declined")
        assert order.payment_status == PaymentStatus.FAILED.value
        assert isinstance(order._events[-1], PaymentFailed)

    def test_failure_after_payment_rejected(self, order):
        order.confirm_payment()
        with pytest.raises(ConflictError):
            order.record_payment_failure(reason="late webhook")
        assert order.payment_status == PaymentStatus.PAID.value


class TestRefund:
    def test_full_refund_defaults_to_total(self, order):
        order.confirm_payment()
        order.refund()
        assert order.payment_status == PaymentStatus.REFUNDED.value
        assert order.refund_amount == 648.0
        assert isinstance(order._events[-1], PaymentRefunded)

    def test_partial_refund(self, order):
        order.confirm_payment()
        order.refund(refund_amount=100.0)
        assert order.refund_amount == 100.0

    def test_refund_after_cancellation(self, order):
        order.confirm_payment()
        order.cancel(reason="Out of stock")
        order.refund()
        assert order.status == OrderStatus.CANCELLED.value
        assert order.payment_status == PaymentStatus.REFUNDED.value

    def test_refund_requires_paid_order(self, order):
        with pytest.raises(ConflictError):
            order.refund()
        assert order.payment_status == PaymentStatus.PENDING.value

    def test_refund_cannot_exceed_total(self, order):
        order.confirm_payment()
        with pytest.raises(ValidationError) as exc:
            order.refund(refund_amount=1000.0)
        assert "refund_amount" in exc.value.messages
        assert order.payment_status == PaymentStatus.PAID.value
