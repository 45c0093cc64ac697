"""Checkout — turns a cart into a placed order and redeems its coupon.

Flow:
    1. PlaceOrder prices the cart, validates and applies the coupon, and
       persists a pending order.
    2. The coupon is redeemed with an atomic conditional increment, only after
       the order is stored.
    3. If another checkout took the coupon's last use in between, the order
       is kept and flagged for reconciliation instead of being rolled back.

Order and coupon live in separate aggregates and are never written in the
same transaction; step 3 is the compensating action for that gap.
"""

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from ordering.coupon.coupon import Coupon
from ordering.coupon.redemption import redeem
from ordering.errors import CouponIneligibleError
from ordering.order.order import Order
from ordering.order.placement import FlagOrderForReconciliation, PlaceOrder

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutRequest:
    customer_id: str
    items: Sequence[Mapping]  # {product_id, name, category, unit_price, quantity}
    shipping_address: Mapping
    payment_method: str
    shipping_charges: float = 0.0
    coupon_code: str | None = None
    notes: str | None = None


def checkout(request: CheckoutRequest) -> Order:
    order_id = current_domain.process(
        PlaceOrder(
            customer_id=request.customer_id,
            items=json.dumps([dict(item) for item in request.items]),
            shipping_address=json.dumps(dict(request.shipping_address)),
            payment_method=request.payment_method,
            shipping_charges=request.shipping_charges,
            coupon_code=request.coupon_code,
            notes=request.notes,
        ),
        asynchronous=False,
    )

    order_repo = current_domain.repository_for(Order)
    order = order_repo.get(order_id)
    if not order.coupon_code:
        return order

    coupon = current_domain.repository_for(Coupon).find_by_code(order.coupon_code)
    try:
        redeem(coupon)
    except CouponIneligibleError as exc:
        logger.warning(
            "Coupon redemption failed after order was placed, flagging for reconciliation",
            order_id=str(order.id),
            order_number=order.order_number,
            coupon_code=order.coupon_code,
            reason=exc.reason,
        )
        current_domain.process(
            FlagOrderForReconciliation(
                order_id=str(order.id),
                reason=f"Coupon {order.coupon_code} could not be redeemed: {exc.reason}",
            ),
            asynchronous=False,
        )
        order = order_repo.get(order_id)

    return order
