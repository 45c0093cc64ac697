"""Coupon eligibility: decides whether a coupon may be applied to a cart.

Rules are checked in a fixed order and the first failing rule produces the
reason reported to the customer:

1. the coupon is currently valid (active, inside its window, not used up);
2. the order amount reaches ``min_order_amount``;
3. a first-order-only coupon is only used on the customer's first order;
4. category restrictions: at least one cart category is allowed;
5. product restrictions: at least one cart product is allowed.

Empty restriction lists mean "no restriction". When both lists are set the
cart must satisfy both.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from ordering.coupon.coupon import Coupon
from ordering.errors import CouponIneligibleError

EXPIRED_OR_INACTIVE = "Coupon has expired or is inactive"
FIRST_ORDER_ONLY = "This coupon is valid only for first orders"
NOT_APPLICABLE = "Coupon not applicable to items in your cart"
REDEMPTION_CONTENDED = "Coupon is in high demand, please try again"


def minimum_order_reason(min_order_amount: float) -> str:
    return f"Minimum order amount ₹{min_order_amount:g} required"


@dataclass(frozen=True)
class EligibilityResult:
    valid: bool
    reason: str | None = None


ELIGIBLE = EligibilityResult(valid=True)


def can_apply(
    coupon: Coupon,
    order_amount: float,
    cart_categories: Iterable[str] = (),
    cart_product_ids: Iterable[str] = (),
    is_first_order: bool = False,
    now: datetime | None = None,
) -> EligibilityResult:
    if not coupon.is_currently_valid(now):
        return EligibilityResult(valid=False, reason=EXPIRED_OR_INACTIVE)

    min_order_amount = coupon.min_order_amount or 0.0
    if order_amount < min_order_amount:
        return EligibilityResult(valid=False, reason=minimum_order_reason(min_order_amount))

    if coupon.is_first_order_only and not is_first_order:
        return EligibilityResult(valid=False, reason=FIRST_ORDER_ONLY)

    allowed_categories = set(coupon.categories)
    if allowed_categories and not allowed_categories.intersection(cart_categories):
        return EligibilityResult(valid=False, reason=NOT_APPLICABLE)

    allowed_products = set(coupon.product_ids)
    if allowed_products and not allowed_products.intersection(str(p) for p in cart_product_ids):
        return EligibilityResult(valid=False, reason=NOT_APPLICABLE)

    return ELIGIBLE


def ensure_applicable(coupon: Coupon, order_amount: float, **cart) -> None:
    """Raise ``CouponIneligibleError`` with the first failing rule's reason."""
    result = can_apply(coupon, order_amount, **cart)
    if not result.valid:
        raise CouponIneligibleError(result.reason, code=coupon.code)
