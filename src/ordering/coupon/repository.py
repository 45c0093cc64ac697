"""Repository for the Coupon aggregate."""

import threading
from contextlib import nullcontext

import structlog
from protean.utils.globals import current_domain
from protean.utils.query import Q

from ordering.coupon.coupon import Coupon, normalize_code
from ordering.coupon.eligibility import EXPIRED_OR_INACTIVE, REDEMPTION_CONTENDED
from ordering.domain import ordering
from ordering.errors import CouponIneligibleError
from ordering.utils.batching import iterate_in_batches

logger = structlog.get_logger(__name__)

# Attempts before giving up on a coupon whose counter keeps moving underneath us
MAX_REDEEM_ATTEMPTS = 10

# The in-memory store reads and writes in separate steps; relational stores
# apply the conditional UPDATE atomically on their own.
_memory_counter_lock = threading.Lock()


@ordering.repository(part_of=Coupon)
class CouponRepository:
    def find_by_code(self, code: str) -> Coupon | None:
        """Case-insensitive lookup; codes are stored upper-case."""
        return self._dao.query.filter(code=normalize_code(code)).all().first

    def search(self, search: str | None = None, is_active: bool | None = None, page: int = 1, limit: int = 10):
        query = self._dao.query
        if search:
            query = query.filter(Q(code__icontains=search) | Q(description__icontains=search))
        if is_active is not None:
            query = query.filter(is_active=is_active)
        return query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()

    def find_active(self) -> list[Coupon]:
        return list(iterate_in_batches(self._dao.query.filter(is_active=True).order_by("code")))

    def remove(self, coupon: Coupon) -> None:
        self._dao.delete(coupon)

    def _counter_lock(self):
        provider = current_domain.providers[Coupon.meta_.provider]
        if provider.conn_info["provider"] == "memory":
            return _memory_counter_lock
        return nullcontext()

    def _compare_and_set(self, coupon_id, expected: int) -> bool:
        """Advance ``used_count`` by one only if the store still holds ``expected``."""
        with self._counter_lock():
            updated = self._dao.query.filter(id=coupon_id, used_count=expected).update(used_count=expected + 1)
        return updated == 1

    def redeem(self, coupon: Coupon) -> Coupon:
        """Atomically count one use of the coupon against its usage limit.

        Reads the stored counter, refuses when the limit is already reached and
        otherwise writes ``used_count + 1`` conditioned on the counter being
        unchanged. A lost race re-reads and tries again, so two checkouts racing
        for the last use of a coupon cannot both succeed.
        """
        for _ in range(MAX_REDEEM_ATTEMPTS):
            current = self._dao.get(coupon.id)
            if current.is_exhausted():
                logger.info("Coupon usage limit reached", coupon_id=str(coupon.id), code=current.code)
                raise CouponIneligibleError(EXPIRED_OR_INACTIVE, code=current.code)

            if self._compare_and_set(coupon.id, current.used_count):
                logger.info(
                    "Coupon redeemed",
                    coupon_id=str(coupon.id),
                    code=current.code,
                    used_count=current.used_count + 1,
                )
                return self._dao.get(coupon.id)

            logger.debug("Coupon counter moved during redemption, retrying", coupon_id=str(coupon.id), observed=current.used_count)

        logger.warning("Coupon redemption kept losing races", coupon_id=str(coupon.id), attempts=MAX_REDEEM_ATTEMPTS)
        raise CouponIneligibleError(REDEMPTION_CONTENDED, code=coupon.code)
