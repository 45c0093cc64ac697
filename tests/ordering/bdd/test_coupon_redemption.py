"""BDD tests for coupon redemption against the usage limit."""

from ordering.coupon.coupon import Coupon
from ordering.coupon.redemption import redeem
from ordering.errors import CouponIneligibleError
from protean import current_domain
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/coupon_redemption.feature")


def _try_redeem(coupon) -> bool:
    try:
        redeem(coupon)
    except CouponIneligibleError:
        return False
    return True


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("two checkouts redeem the coupon from the same snapshot", target_fixture="outcomes")
def racing_redemptions(coupon):
    repo = current_domain.repository_for(Coupon)
    snapshots = [repo.get(coupon.id), repo.get(coupon.id)]
    return [_try_redeem(snapshot) for snapshot in snapshots]


@when(parsers.cfparse("the coupon is redeemed {times:d} times"), target_fixture="outcomes")
def repeated_redemptions(coupon, times):
    return [_try_redeem(coupon) for _ in range(times)]


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("exactly one redemption succeeds")
def exactly_one(outcomes):
    assert outcomes.count(True) == 1


@then(parsers.cfparse("{count:d} redemptions succeed"))
def count_succeed(outcomes, count):
    assert outcomes.count(True) == count


@then(parsers.cfparse("the coupon has been used {count:d} time"))
@then(parsers.cfparse("the coupon has been used {count:d} times"))
def used_count_is(coupon, count):
    assert current_domain.repository_for(Coupon).get(coupon.id).used_count == count
