"""Discount calculation for an eligible coupon.

Percentage discounts are rounded half-up to whole currency units, then
capped by ``max_discount_amount`` when one is set. The result never exceeds
the order amount and is never negative.
"""

from decimal import ROUND_HALF_UP, Decimal

from ordering.coupon.coupon import Coupon, DiscountType


def _round_half_up(value: Decimal) -> Decimal:
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def calculate_discount(coupon: Coupon, order_amount: float) -> float:
    if order_amount <= 0:
        return 0.0

    amount = Decimal(str(order_amount))
    value = Decimal(str(coupon.discount_value or 0))

    if DiscountType(coupon.discount_type) == DiscountType.PERCENTAGE:
        discount = _round_half_up(amount * value / Decimal(100))
    else:
        discount = value

    if coupon.max_discount_amount is not None:
        discount = min(discount, Decimal(str(coupon.max_discount_amount)))

    discount = max(Decimal(0), min(discount, amount))
    return float(discount)
