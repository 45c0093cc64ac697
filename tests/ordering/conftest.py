from datetime import UTC, datetime, timedelta

import pytest
from ordering.coupon.coupon import Coupon


@pytest.fixture()
def now():
    return datetime.now(UTC)


@pytest.fixture()
def shipping_address():
    return {
        "full_name": "Asha Kumari",
        "phone": "9876543210",
        "email": "asha@example.com",
        "address": "12 Boring Road",
        "city": "Patna",
        "state": "Bihar",
        "postal_code": "800001",
    }


@pytest.fixture()
def cart_items():
    """Two jars of thekua and one box of khaja: 2 * 249 + 100 = 598."""
    return [
        {
            "product_id": "prod-thekua",
            "name": "Classic Thekua (500g)",
            "category": "sweets",
            "unit_price": 249.0,
            "quantity": 2,
        },
        {
            "product_id": "prod-khaja",
            "name": "Khaja Box",
            "category": "snacks",
            "unit_price": 100.0,
            "quantity": 1,
        },
    ]


@pytest.fixture()
def make_coupon(now):
    """Build a valid, currently active coupon; keyword arguments override defaults."""

    def _make(**overrides):
        attrs = {
            "code": "SAVE10",
            "description": "10% off",
            "discount_type": "percentage",
            "discount_value": 10,
            "start_date": now - timedelta(days=1),
            "end_date": now + timedelta(days=30),
        }
        attrs.update(overrides)
        coupon = Coupon.create(**attrs)
        coupon._events.clear()
        return coupon

    return _make
