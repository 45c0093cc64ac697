"""Order placement — commands and handler.

``PlaceOrder`` prices the cart, applies an eligible coupon and persists a
pending order. Coupon redemption happens afterwards, in the checkout flow,
once the order is durably stored. ``FlagOrderForReconciliation`` is the
compensating step used when that redemption fails.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.coupon.coupon import Coupon
from ordering.coupon.discount import calculate_discount
from ordering.coupon.eligibility import ensure_applicable
from ordering.domain import ordering
from ordering.order.order import Order, PaymentMethod

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, name, category, unit_price, quantity}
    shipping_address = Text(required=True)  # JSON: address dict
    payment_method = String(required=True, choices=PaymentMethod)
    shipping_charges = Float(default=0.0, min_value=0.0)
    coupon_code = String(max_length=20)
    notes = Text()


@ordering.command(part_of="Order")
class FlagOrderForReconciliation:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


def _load_json(value):
    return json.loads(value) if isinstance(value, str) else value


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = _load_json(command.items)
        shipping_address = _load_json(command.shipping_address)
        order_repo = current_domain.repository_for(Order)

        subtotal = sum(float(item["unit_price"]) * int(item["quantity"]) for item in items_data)

        coupon_code = None
        discount_amount = 0.0
        if command.coupon_code:
            coupon = current_domain.repository_for(Coupon).find_by_code(command.coupon_code)
            if coupon is None:
                raise ObjectNotFoundError({"coupon_code": ["Invalid coupon code"]})

            ensure_applicable(
                coupon,
                subtotal,
                cart_categories=[item.get("category") for item in items_data if item.get("category")],
                cart_product_ids=[str(item["product_id"]) for item in items_data],
                is_first_order=order_repo.is_first_order(command.customer_id),
            )
            coupon_code = coupon.code
            discount_amount = calculate_discount(coupon, subtotal)

        order = Order.place(
            order_number=order_repo.next_order_number(),
            customer_id=command.customer_id,
            items_data=items_data,
            shipping_address=shipping_address,
            payment_method=command.payment_method,
            shipping_charges=command.shipping_charges or 0.0,
            discount_amount=discount_amount,
            coupon_code=coupon_code,
            notes=command.notes,
        )
        order_repo.add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            total_amount=order.total_amount,
            coupon_code=coupon_code,
        )
        return str(order.id)

    @handle(FlagOrderForReconciliation)
    def flag_for_reconciliation(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.flag_for_reconciliation(reason=command.reason)
        repo.add(order)
