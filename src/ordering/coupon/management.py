"""Coupon administration — create, edit, enable/disable and delete coupons."""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.coupon.coupon import EDITABLE_FIELDS, Coupon, DiscountType, normalize_code
from ordering.domain import ordering
from ordering.errors import ConflictError
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, min_length=3, max_length=20)
    description = String(required=True, max_length=200)
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(required=True)
    min_order_amount = Float(default=0.0, min_value=0.0)
    max_discount_amount = Float(min_value=0.0)
    usage_limit = Integer(min_value=1)
    start_date = DateTime()
    end_date = DateTime(required=True)
    applicable_categories = Text()  # JSON array
    applicable_product_ids = Text()  # JSON array
    is_first_order_only = Boolean(default=False)
    created_by = Identifier()


@ordering.command(part_of="Coupon")
class UpdateCoupon:
    """Edit coupon rules. Fields left unset keep their current value."""

    coupon_id = Identifier(required=True)
    code = String(min_length=3, max_length=20)
    description = String(max_length=200)
    discount_type = String(choices=DiscountType)
    discount_value = Float()
    min_order_amount = Float(min_value=0.0)
    max_discount_amount = Float(min_value=0.0)
    usage_limit = Integer(min_value=1)
    is_active = Boolean()
    start_date = DateTime()
    end_date = DateTime()
    applicable_categories = Text()  # JSON array
    applicable_product_ids = Text()  # JSON array
    is_first_order_only = Boolean()


@ordering.command(part_of="Coupon")
class ToggleCouponStatus:
    coupon_id = Identifier(required=True)


@ordering.command(part_of="Coupon")
class DeleteCoupon:
    coupon_id = Identifier(required=True)


def _check_discount_value(discount_type, discount_value):
    if discount_value is None or discount_value <= 0:
        raise ValidationError({"discount_value": ["Discount value must be greater than zero"]})
    if DiscountType(discount_type) == DiscountType.PERCENTAGE and discount_value > 100:
        raise ValidationError({"discount_value": ["Percentage discount cannot exceed 100"]})


def _ensure_code_is_free(repo, code, coupon_id=None):
    existing = repo.find_by_code(code)
    if existing is not None and str(existing.id) != str(coupon_id):
        raise ConflictError({"code": ["Coupon code already exists"]})


@ordering.command_handler(part_of=Coupon)
class ManageCouponHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)

        _check_discount_value(command.discount_type, command.discount_value)
        _ensure_code_is_free(repo, command.code)

        coupon = Coupon.create(
            code=command.code,
            description=command.description,
            discount_type=command.discount_type,
            discount_value=command.discount_value,
            start_date=command.start_date,
            end_date=command.end_date,
            min_order_amount=command.min_order_amount,
            # A zero cap means "no cap"
            max_discount_amount=command.max_discount_amount or None,
            usage_limit=command.usage_limit,
            applicable_categories=json.loads(command.applicable_categories) if command.applicable_categories else [],
            applicable_product_ids=json.loads(command.applicable_product_ids)
            if command.applicable_product_ids
            else [],
            is_first_order_only=command.is_first_order_only,
            created_by=command.created_by,
        )
        repo.add(coupon)

        logger.info("Coupon created", coupon_id=str(coupon.id), code=coupon.code)
        return str(coupon.id)

    @handle(UpdateCoupon)
    def update_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)

        changes = {field: getattr(command, field) for field in EDITABLE_FIELDS if getattr(command, field) is not None}
        for field in ("applicable_categories", "applicable_product_ids"):
            if field in changes:
                changes[field] = json.loads(changes[field])

        if "discount_type" in changes or "discount_value" in changes:
            _check_discount_value(
                changes.get("discount_type", coupon.discount_type),
                changes.get("discount_value", coupon.discount_value),
            )
        if "code" in changes:
            _ensure_code_is_free(repo, changes["code"], coupon_id=coupon.id)

        coupon.update(**changes)
        repo.add(coupon)

        logger.info("Coupon updated", coupon_id=str(coupon.id), fields=sorted(changes))

    @handle(ToggleCouponStatus)
    def toggle_status(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)
        coupon.toggle_status()
        repo.add(coupon)

        logger.info("Coupon status toggled", coupon_id=str(coupon.id), is_active=coupon.is_active)
        return coupon.is_active

    @handle(DeleteCoupon)
    def delete_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get(command.coupon_id)

        references = current_domain.repository_for(Order).count_with_coupon(normalize_code(coupon.code))
        if references:
            raise ConflictError({"coupon": ["Cannot delete coupon that has been used in orders"]})

        repo.remove(coupon)
        logger.info("Coupon deleted", coupon_id=str(coupon.id), code=coupon.code)
