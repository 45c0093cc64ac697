"""Shared BDD fixtures and step definitions for the Ordering domain."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.coupon.coupon import Coupon
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
from ordering.order.order import Order
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

# Map event name strings to classes for dynamic lookup in Then steps
_ORDER_EVENT_CLASSES = {
    "OrderPlaced": OrderPlaced,
    "OrderProcessing": OrderProcessing,
    "OrderShipped": OrderShipped,
    "OrderDelivered": OrderDelivered,
    "OrderCancelled": OrderCancelled,
    "PaymentConfirmed": PaymentConfirmed,
    "PaymentFailed": PaymentFailed,
    "PaymentRefunded": PaymentRefunded,
    "OrderFlaggedForReconciliation": OrderFlaggedForReconciliation,
}


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


@pytest.fixture()
def coupon_attrs():
    """Mutable coupon definition assembled by Given steps."""
    now = datetime.now(UTC)
    return {
        "code": "SAVE10",
        "description": "Festive discount",
        "discount_type": "percentage",
        "discount_value": 10,
        "start_date": now - timedelta(days=1),
        "end_date": now + timedelta(days=30),
    }


# ---------------------------------------------------------------------------
# Given steps — Coupon
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse("a percentage coupon worth {value:g}% with a minimum order of {minimum:g} capped at {cap:g}"),
    target_fixture="coupon",
)
def capped_percentage_coupon(coupon_attrs, value, minimum, cap):
    coupon_attrs.update(discount_type="percentage", discount_value=value, min_order_amount=minimum, max_discount_amount=cap)
    coupon = Coupon.create(**coupon_attrs)
    coupon._events.clear()
    return coupon


@given(parsers.cfparse("a fixed coupon worth {value:g}"), target_fixture="coupon")
def fixed_coupon(coupon_attrs, value):
    coupon_attrs.update(discount_type="fixed", discount_value=value)
    coupon = Coupon.create(**coupon_attrs)
    coupon._events.clear()
    return coupon


@given(parsers.cfparse("a coupon limited to {limit:d} use"), target_fixture="coupon")
@given(parsers.cfparse("a coupon limited to {limit:d} uses"), target_fixture="coupon")
def limited_coupon(coupon_attrs, limit):
    coupon_attrs.update(usage_limit=limit)
    coupon = Coupon.create(**coupon_attrs)
    coupon._events.clear()
    return coupon


@given("the coupon is stored", target_fixture="coupon")
def stored_coupon(coupon):
    repo = current_domain.repository_for(Coupon)
    repo.add(coupon)
    return repo.get(coupon.id)


# ---------------------------------------------------------------------------
# Given steps — Order
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse("an order with items totalling {subtotal:g} and shipping of {shipping:g}"),
    target_fixture="order",
)
def placed_order(subtotal, shipping):
    order = Order.place(
        order_number="THK000001",
        customer_id="cust-001",
        items_data=[
            {
                "product_id": "prod-thekua",
                "name": "Classic Thekua (500g)",
                "category": "sweets",
                "unit_price": subtotal,
                "quantity": 1,
            }
        ],
        shipping_address={
            "full_name": "Asha Kumari",
            "phone": "9876543210",
            "address": "12 Boring Road",
            "city": "Patna",
            "state": "Bihar",
            "postal_code": "800001",
        },
        shipping_charges=shipping,
    )
    return order


# ---------------------------------------------------------------------------
# Then steps — Order (shared, plain assertions)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def payment_status_is(order, status):
    assert order.payment_status == status


@then(parsers.cfparse("the order total is {total:g}"))
def order_total_is(order, total):
    assert order.total_amount == total


@then("the order action fails with a validation error")
def order_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("an {event_type} order event is raised"))
@then(parsers.cfparse("a {event_type} order event is raised"))
def order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order._events]}"
