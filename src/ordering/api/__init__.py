"""Ordering domain API package."""

from ordering.api.errors import register_error_handlers
from ordering.api.routes import coupon_router, order_router

__all__ = ["coupon_router", "order_router", "register_error_handlers"]
