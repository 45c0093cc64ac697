"""Coupon redemption: counts a successful order against a coupon's usage limit."""

from protean.utils.globals import current_domain

from ordering.coupon.coupon import Coupon


def redeem(coupon: Coupon) -> Coupon:
    """Persist one more use of ``coupon`` and return the stored coupon.

    Raises ``CouponIneligibleError`` when the usage limit was reached, including
    when a concurrent checkout took the last available use first.
    """
    return current_domain.repository_for(Coupon).redeem(coupon)
