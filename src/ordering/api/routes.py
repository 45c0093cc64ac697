"""FastAPI routes for the Ordering domain — coupons and orders.

Authentication happens upstream. The gateway forwards the caller's identity
in the ``X-Customer-Id`` header and their role in ``X-User-Role``.
"""

import json

from fastapi import APIRouter, Depends, Header, HTTPException
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    CancelOrderRequest,
    CheckoutRequest,
    ConfirmPaymentRequest,
    CouponIdResponse,
    CouponListResponse,
    CouponResponse,
    CouponStatusResponse,
    CouponValidationResponse,
    CreateCouponRequest,
    OrderItemSchema,
    OrderListResponse,
    OrderResponse,
    OrderStatsResponse,
    PaginationSchema,
    RecordPaymentFailureRequest,
    RefundPaymentRequest,
    ShipOrderRequest,
    ShippingAddressSchema,
    StatusResponse,
    UpdateCouponRequest,
    UpdateOrderStatusRequest,
    ValidateCouponRequest,
)
from ordering.checkout.checkout import CheckoutRequest as CheckoutData
from ordering.checkout.checkout import checkout
from ordering.coupon import queries as coupon_queries
from ordering.coupon.coupon import Coupon
from ordering.coupon.management import CreateCoupon, DeleteCoupon, ToggleCouponStatus, UpdateCoupon
from ordering.errors import CouponIneligibleError
from ordering.order import queries as order_queries
from ordering.order.administration import UpdateOrderStatus
from ordering.order.cancellation import CancelOrder
from ordering.order.fulfillment import DeliverOrder, MarkProcessing, ShipOrder
from ordering.order.order import CancellationActor, Order
from ordering.order.payment import ConfirmPayment, RecordPaymentFailure, RefundPayment

ADMIN_ROLE = "admin"


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------
def caller_is_admin(x_user_role: str | None = Header(default=None)) -> bool:
    return x_user_role == ADMIN_ROLE


def require_admin(is_admin: bool = Depends(caller_is_admin)) -> None:
    if not is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")


def require_customer(x_customer_id: str | None = Header(default=None)) -> str:
    if not x_customer_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_customer_id


def optional_customer(x_customer_id: str | None = Header(default=None)) -> str | None:
    return x_customer_id


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------
def _coupon_response(coupon: Coupon) -> CouponResponse:
    return CouponResponse(
        coupon_id=str(coupon.id),
        code=coupon.code,
        description=coupon.description,
        discount_type=coupon.discount_type,
        discount_value=coupon.discount_value,
        min_order_amount=coupon.min_order_amount or 0.0,
        max_discount_amount=coupon.max_discount_amount,
        usage_limit=coupon.usage_limit,
        used_count=coupon.used_count or 0,
        is_active=coupon.is_active,
        start_date=coupon.start_date,
        end_date=coupon.end_date,
        applicable_categories=coupon.categories,
        applicable_product_ids=coupon.product_ids,
        is_first_order_only=coupon.is_first_order_only,
    )


def _order_response(order: Order) -> OrderResponse:
    address = order.shipping_address
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        items=[
            OrderItemSchema(
                product_id=str(item.product_id),
                name=item.name,
                category=item.category,
                unit_price=item.unit_price,
                quantity=item.quantity,
            )
            for item in order.items
        ],
        shipping_address=ShippingAddressSchema(
            full_name=address.full_name,
            phone=address.phone,
            email=address.email,
            address=address.address,
            city=address.city,
            state=address.state,
            postal_code=address.postal_code,
            landmark=address.landmark,
        ),
        payment_method=order.payment_method,
        status=order.status,
        payment_status=order.payment_status,
        subtotal=order.subtotal,
        shipping_charges=order.shipping_charges,
        discount_amount=order.discount_amount,
        total_amount=order.total_amount,
        coupon_code=order.coupon_code,
        tracking_number=order.tracking_number,
        estimated_delivery=order.estimated_delivery,
        cancellation_reason=order.cancellation_reason,
        refund_amount=order.refund_amount,
        needs_reconciliation=bool(order.needs_reconciliation),
        created_at=order.created_at,
    )


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("", status_code=201, response_model=CouponIdResponse, dependencies=[Depends(require_admin)])
async def create_coupon(body: CreateCouponRequest) -> CouponIdResponse:
    command = CreateCoupon(
        code=body.code,
        description=body.description,
        discount_type=body.discount_type,
        discount_value=body.discount_value,
        min_order_amount=body.min_order_amount,
        max_discount_amount=body.max_discount_amount,
        usage_limit=body.usage_limit,
        start_date=body.start_date,
        end_date=body.end_date,
        applicable_categories=json.dumps(body.applicable_categories),
        applicable_product_ids=json.dumps(body.applicable_product_ids),
        is_first_order_only=body.is_first_order_only,
    )
    result = current_domain.process(command, asynchronous=False)
    return CouponIdResponse(coupon_id=result)


@coupon_router.get("", response_model=CouponListResponse, dependencies=[Depends(require_admin)])
async def list_coupons(
    search: str | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> CouponListResponse:
    result = coupon_queries.list_coupons(search=search, status=status, page=page, limit=limit)
    return CouponListResponse(
        coupons=[_coupon_response(c) for c in result["coupons"]],
        pagination=PaginationSchema(**result["pagination"]),
    )


@coupon_router.get("/active", response_model=list[CouponResponse])
async def list_active_coupons() -> list[CouponResponse]:
    return [_coupon_response(c) for c in coupon_queries.active_coupons()]


@coupon_router.post("/validate", response_model=CouponValidationResponse)
async def validate_coupon(
    body: ValidateCouponRequest,
    customer_id: str | None = Depends(optional_customer),
) -> CouponValidationResponse:
    result = coupon_queries.validate_coupon(
        code=body.code,
        order_amount=body.order_amount,
        cart_items=[item.model_dump() for item in body.cart_items],
        customer_id=customer_id,
    )
    if not result["valid"]:
        raise CouponIneligibleError(result["reason"], code=body.code)
    return CouponValidationResponse(**result)


@coupon_router.put("/{coupon_id}", response_model=StatusResponse, dependencies=[Depends(require_admin)])
async def update_coupon(coupon_id: str, body: UpdateCouponRequest) -> StatusResponse:
    changes = body.model_dump(exclude_none=True)
    for field in ("applicable_categories", "applicable_product_ids"):
        if field in changes:
            changes[field] = json.dumps(changes[field])

    command = UpdateCoupon(coupon_id=coupon_id, **changes)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@coupon_router.patch(
    "/{coupon_id}/toggle", response_model=CouponStatusResponse, dependencies=[Depends(require_admin)]
)
async def toggle_coupon_status(coupon_id: str) -> CouponStatusResponse:
    command = ToggleCouponStatus(coupon_id=coupon_id)
    is_active = current_domain.process(command, asynchronous=False)
    return CouponStatusResponse(coupon_id=coupon_id, is_active=is_active)


@coupon_router.delete("/{coupon_id}", response_model=StatusResponse, dependencies=[Depends(require_admin)])
async def delete_coupon(coupon_id: str) -> StatusResponse:
    command = DeleteCoupon(coupon_id=coupon_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(body: CheckoutRequest, customer_id: str = Depends(require_customer)) -> OrderResponse:
    order = checkout(
        CheckoutData(
            customer_id=customer_id,
            items=[item.model_dump() for item in body.items],
            shipping_address=body.shipping_address.model_dump(),
            payment_method=body.payment_method,
            shipping_charges=body.shipping_charges,
            coupon_code=body.coupon_code,
            notes=body.notes,
        )
    )
    return _order_response(order)


@order_router.get("/my-orders", response_model=list[OrderResponse])
async def my_orders(customer_id: str = Depends(require_customer)) -> list[OrderResponse]:
    return [_order_response(o) for o in order_queries.customer_orders(customer_id)]


@order_router.get("/stats", response_model=OrderStatsResponse, dependencies=[Depends(require_admin)])
async def order_stats() -> OrderStatsResponse:
    return OrderStatsResponse(**order_queries.order_stats())


@order_router.get("", response_model=OrderListResponse, dependencies=[Depends(require_admin)])
async def list_orders(
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> OrderListResponse:
    result = order_queries.list_orders(status=status, search=search, page=page, limit=limit)
    return OrderListResponse(
        orders=[_order_response(o) for o in result["orders"]],
        pagination=PaginationSchema(**result["pagination"]),
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    customer_id: str | None = Depends(optional_customer),
    is_admin: bool = Depends(caller_is_admin),
) -> OrderResponse:
    order = order_queries.get_order(order_id, customer_id=customer_id, is_admin=is_admin)
    return _order_response(order)


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    customer_id: str | None = Depends(optional_customer),
    is_admin: bool = Depends(caller_is_admin),
) -> StatusResponse:
    if not is_admin and not customer_id:
        raise HTTPException(status_code=401, detail="Authentication required")

    command = CancelOrder(
        order_id=order_id,
        reason=body.reason,
        cancelled_by=CancellationActor.ADMIN.value if is_admin else CancellationActor.CUSTOMER.value,
        customer_id=customer_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/status", response_model=StatusResponse, dependencies=[Depends(require_admin)])
async def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> StatusResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        tracking_number=body.tracking_number,
        estimated_delivery=body.estimated_delivery,
        admin_notes=body.admin_notes,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/processing", response_model=StatusResponse, dependencies=[Depends(require_admin)])
async def mark_processing(order_id: str) -> StatusResponse:
    current_domain.process(MarkProcessing(order_id=order_id), asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/ship", response_model=StatusResponse, dependencies=[Depends(require_admin)])
async def ship_order(order_id: str, body: ShipOrderRequest) -> StatusResponse:
    command = ShipOrder(
        order_id=order_id,
        tracking_number=body.tracking_number,
        estimated_delivery=body.estimated_delivery,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/deliver", response_model=StatusResponse, dependencies=[Depends(require_admin)])
async def deliver_order(order_id: str) -> StatusResponse:
    current_domain.process(DeliverOrder(order_id=order_id), asynchronous=False)
    return StatusResponse()


@order_router.put(
    "/{order_id}/payment/confirm", response_model=StatusResponse, dependencies=[Depends(require_admin)]
)
async def confirm_payment(order_id: str, body: ConfirmPaymentRequest) -> StatusResponse:
    command = ConfirmPayment(order_id=order_id, payment_reference=body.payment_reference)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put(
    "/{order_id}/payment/failure", response_model=StatusResponse, dependencies=[Depends(require_admin)]
)
async def record_payment_failure(order_id: str, body: RecordPaymentFailureRequest) -> StatusResponse:
    command = RecordPaymentFailure(order_id=order_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/payment/refund", response_model=StatusResponse, dependencies=[Depends(require_admin)])
async def refund_payment(order_id: str, body: RefundPaymentRequest) -> StatusResponse:
    command = RefundPayment(order_id=order_id, refund_amount=body.refund_amount)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()
