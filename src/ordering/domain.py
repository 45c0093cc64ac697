"""Ordering bounded context — coupons, orders and checkout for the Thekua storefront.

Coupons are administered here and redeemed against orders at checkout. Orders
follow a small fulfillment state machine (pending → processing → shipped →
delivered, or pending → cancelled) with an independent payment status.
"""

from protean.domain import Domain

from ordering.utils.logging import configure_logging

configure_logging()

ordering = Domain(name="ordering")
