"""Read-side order queries for customers and administrators."""

import math

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.order.order import Order, OrderStatus


def get_order(order_id, customer_id=None, is_admin: bool = False) -> Order:
    """Fetch an order for its owner or an administrator.

    Anyone else gets ``ObjectNotFoundError``, the same as for a missing order.
    """
    order = current_domain.repository_for(Order).get(order_id)
    if not is_admin and not order.is_owned_by(customer_id):
        raise ObjectNotFoundError({"order": ["Order not found"]})
    return order


def customer_orders(customer_id) -> list[Order]:
    return current_domain.repository_for(Order).for_customer(customer_id)


def list_orders(status: str | None = None, search: str | None = None, page: int = 1, limit: int = 10) -> dict:
    page = max(page, 1)
    result = current_domain.repository_for(Order).search(status=status, search=search, page=page, limit=limit)
    return {
        "orders": result.items,
        "pagination": {
            "current": page,
            "pages": math.ceil(result.total / limit) if limit else 0,
            "total": result.total,
        },
    }


def order_stats() -> dict:
    """Order counts per status and revenue from orders that were not cancelled."""
    repo = current_domain.repository_for(Order)
    counts = {status.value: repo.count_by_status(status) for status in OrderStatus}
    revenue = round(sum(order.total_amount for order in repo.iterate_billable()), 2)
    return {
        "total_orders": sum(counts.values()),
        **{f"{status}_orders": count for status, count in counts.items()},
        "total_revenue": revenue,
    }
