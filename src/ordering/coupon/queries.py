"""Read-side coupon queries used by the storefront and the admin panel."""

import math
from collections.abc import Iterable, Mapping
from datetime import datetime

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.coupon.coupon import Coupon
from ordering.coupon.discount import calculate_discount
from ordering.coupon.eligibility import can_apply
from ordering.order.order import Order


def list_coupons(search: str | None = None, status: str | None = None, page: int = 1, limit: int = 10) -> dict:
    """Newest coupons first, optionally filtered by text and active/inactive status."""
    page = max(page, 1)
    is_active = {"active": True, "inactive": False}.get(status) if status else None

    result = current_domain.repository_for(Coupon).search(search=search, is_active=is_active, page=page, limit=limit)
    return {
        "coupons": result.items,
        "pagination": {
            "current": page,
            "pages": math.ceil(result.total / limit) if limit else 0,
            "total": result.total,
        },
    }


def active_coupons(now: datetime | None = None) -> list[Coupon]:
    """Coupons a customer could use right now, ignoring cart-specific rules."""
    return [c for c in current_domain.repository_for(Coupon).find_active() if c.is_currently_valid(now)]


def validate_coupon(
    code: str,
    order_amount: float,
    cart_items: Iterable[Mapping] = (),
    customer_id=None,
    now: datetime | None = None,
) -> dict:
    """Check a code against a cart without redeeming it.

    ``cart_items`` are mappings with ``product_id`` and, optionally,
    ``category``. The first-order flag comes from the customer's order history;
    anonymous carts never count as a first order.
    """
    coupon = current_domain.repository_for(Coupon).find_by_code(code)
    if coupon is None or not coupon.is_active:
        raise ObjectNotFoundError({"code": ["Invalid coupon code"]})

    cart_items = list(cart_items)
    is_first_order = customer_id is not None and current_domain.repository_for(Order).is_first_order(customer_id)

    result = can_apply(
        coupon,
        order_amount,
        cart_categories=[item["category"] for item in cart_items if item.get("category")],
        cart_product_ids=[str(item["product_id"]) for item in cart_items if item.get("product_id")],
        is_first_order=is_first_order,
        now=now,
    )
    if not result.valid:
        return {"valid": False, "reason": result.reason}

    return {
        "valid": True,
        "code": coupon.code,
        "discount_type": coupon.discount_type,
        "discount_value": coupon.discount_value,
        "discount_amount": calculate_discount(coupon, order_amount),
    }
