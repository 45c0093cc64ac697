"""Repository for the Order aggregate."""

from protean.utils.query import Q

from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus, format_order_number
from ordering.utils.batching import iterate_in_batches


@ordering.repository(part_of=Order)
class OrderRepository:
    def next_order_number(self) -> str:
        """Next sequential order number, ``THK`` followed by six digits."""
        return format_order_number(self._dao.query.all().total + 1)

    def is_first_order(self, customer_id) -> bool:
        """True when the customer has no orders other than cancelled ones."""
        prior = (
            self._dao.query.filter(customer_id=str(customer_id))
            .exclude(status=OrderStatus.CANCELLED.value)
            .all()
        )
        return prior.total == 0

    def count_with_coupon(self, coupon_code: str) -> int:
        return self._dao.query.filter(coupon_code=coupon_code).all().total

    def count_by_status(self, status: OrderStatus) -> int:
        return self._dao.query.filter(status=status.value).all().total

    def for_customer(self, customer_id) -> list[Order]:
        """Every order of the customer, newest first."""
        query = self._dao.query.filter(customer_id=str(customer_id)).order_by(["-created_at", "-order_number"])
        return list(iterate_in_batches(query))

    def search(self, status: str | None = None, search: str | None = None, page: int = 1, limit: int = 10):
        query = self._dao.query
        if status:
            query = query.filter(status=status)
        if search:
            query = query.filter(
                Q(order_number__icontains=search)
                | Q(shipping_address_full_name__icontains=search)
                | Q(shipping_address_phone__icontains=search)
            )
        return query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()

    def iterate_billable(self):
        """Yield every order that is not cancelled."""
        query = self._dao.query.exclude(status=OrderStatus.CANCELLED.value).order_by(["created_at", "order_number"])
        return iterate_in_batches(query)
