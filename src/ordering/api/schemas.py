"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

DiscountTypeLiteral = Literal["percentage", "fixed"]
PaymentMethodLiteral = Literal["cod", "card", "upi", "razorpay"]
OrderStatusLiteral = Literal["pending", "processing", "shipped", "delivered", "cancelled"]


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class PaginationSchema(BaseModel):
    current: int
    pages: int
    total: int


class ShippingAddressSchema(BaseModel):
    full_name: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=1, max_length=20)
    email: str | None = None
    address: str = Field(min_length=1, max_length=500)
    city: str
    state: str
    postal_code: str
    landmark: str | None = None


class OrderItemSchema(BaseModel):
    product_id: str
    name: str
    category: str | None = None
    unit_price: float = Field(ge=0)
    quantity: int = Field(ge=1)


class CartLineSchema(BaseModel):
    product_id: str
    category: str | None = None


# ---------------------------------------------------------------------------
# Coupon Request Schemas
# ---------------------------------------------------------------------------
class CreateCouponRequest(BaseModel):
    code: str = Field(min_length=3, max_length=20)
    description: str = Field(min_length=1, max_length=200)
    discount_type: DiscountTypeLiteral
    discount_value: float = Field(gt=0)
    min_order_amount: float = Field(ge=0, default=0.0)
    max_discount_amount: float | None = Field(ge=0, default=None)
    usage_limit: int | None = Field(ge=1, default=None)
    start_date: datetime | None = None
    end_date: datetime
    applicable_categories: list[str] = Field(default_factory=list)
    applicable_product_ids: list[str] = Field(default_factory=list)
    is_first_order_only: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "DIWALI10",
                    "description": "10% off festive orders above ₹500",
                    "discount_type": "percentage",
                    "discount_value": 10,
                    "min_order_amount": 500,
                    "max_discount_amount": 100,
                    "usage_limit": 200,
                    "end_date": "2026-11-15T23:59:59Z",
                }
            ]
        }
    }


class UpdateCouponRequest(BaseModel):
    code: str | None = Field(default=None, min_length=3, max_length=20)
    description: str | None = Field(default=None, max_length=200)
    discount_type: DiscountTypeLiteral | None = None
    discount_value: float | None = Field(default=None, gt=0)
    min_order_amount: float | None = Field(default=None, ge=0)
    max_discount_amount: float | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=1)
    is_active: bool | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    applicable_categories: list[str] | None = None
    applicable_product_ids: list[str] | None = None
    is_first_order_only: bool | None = None


class ValidateCouponRequest(BaseModel):
    code: str
    order_amount: float = Field(ge=0)
    cart_items: list[CartLineSchema] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    items: list[OrderItemSchema] = Field(min_length=1)
    shipping_address: ShippingAddressSchema
    payment_method: PaymentMethodLiteral = "cod"
    shipping_charges: float = Field(ge=0, default=0.0)
    coupon_code: str | None = None
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [
                        {
                            "product_id": "prod-thekua-500g",
                            "name": "Classic Thekua (500g)",
                            "category": "sweets",
                            "unit_price": 299.0,
                            "quantity": 2,
                        }
                    ],
                    "shipping_address": {
                        "full_name": "Asha Kumari",
                        "phone": "9876543210",
                        "address": "12 Boring Road",
                        "city": "Patna",
                        "state": "Bihar",
                        "postal_code": "800001",
                    },
                    "payment_method": "cod",
                    "shipping_charges": 50.0,
                }
            ]
        }
    }


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class ShipOrderRequest(BaseModel):
    tracking_number: str | None = None
    estimated_delivery: str | None = Field(default=None, max_length=10)


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatusLiteral
    tracking_number: str | None = None
    estimated_delivery: str | None = Field(default=None, max_length=10)
    admin_notes: str | None = None


class ConfirmPaymentRequest(BaseModel):
    payment_reference: str | None = None


class RecordPaymentFailureRequest(BaseModel):
    reason: str | None = None


class RefundPaymentRequest(BaseModel):
    refund_amount: float | None = Field(default=None, ge=0)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class CouponIdResponse(BaseModel):
    coupon_id: str


class CouponStatusResponse(BaseModel):
    coupon_id: str
    is_active: bool


class CouponResponse(BaseModel):
    coupon_id: str
    code: str
    description: str
    discount_type: DiscountTypeLiteral
    discount_value: float
    min_order_amount: float
    max_discount_amount: float | None = None
    usage_limit: int | None = None
    used_count: int
    is_active: bool
    start_date: datetime
    end_date: datetime
    applicable_categories: list[str]
    applicable_product_ids: list[str]
    is_first_order_only: bool


class CouponListResponse(BaseModel):
    coupons: list[CouponResponse]
    pagination: PaginationSchema


class CouponValidationResponse(BaseModel):
    valid: bool
    code: str
    discount_type: DiscountTypeLiteral
    discount_value: float
    discount_amount: float


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    items: list[OrderItemSchema]
    shipping_address: ShippingAddressSchema
    payment_method: PaymentMethodLiteral
    status: OrderStatusLiteral
    payment_status: str
    subtotal: float
    shipping_charges: float
    discount_amount: float
    total_amount: float
    coupon_code: str | None = None
    tracking_number: str | None = None
    estimated_delivery: str | None = None
    cancellation_reason: str | None = None
    refund_amount: float | None = None
    needs_reconciliation: bool = False
    created_at: datetime | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    pagination: PaginationSchema


class OrderStatsResponse(BaseModel):
    total_orders: int
    pending_orders: int
    processing_orders: int
    shipped_orders: int
    delivered_orders: int
    cancelled_orders: int
    total_revenue: float
