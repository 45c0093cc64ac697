"""Coupon aggregate (CQRS): a discount code with eligibility rules and a usage counter.

Codes are stored upper-case and are unique across the store. A coupon is
*currently valid* when it is active, the clock is inside its
``[start_date, end_date]`` window, and it has not reached its usage limit.
Category and product restrictions are kept as JSON arrays, the same way the
cart keeps its applied coupon codes.

The usage counter is only ever advanced through
``CouponRepository.redeem``, which performs a compare-and-set against the
store so concurrent checkouts cannot overshoot ``usage_limit``.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from ordering.coupon.events import CouponCreated, CouponStatusToggled, CouponUpdated
from ordering.domain import ordering


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


# Fields an administrator may change after creation. used_count is excluded.
EDITABLE_FIELDS = (
    "code",
    "description",
    "discount_type",
    "discount_value",
    "min_order_amount",
    "max_discount_amount",
    "usage_limit",
    "is_active",
    "start_date",
    "end_date",
    "applicable_categories",
    "applicable_product_ids",
    "is_first_order_only",
)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def normalize_code(code: str) -> str:
    return code.strip().upper()


@ordering.aggregate
class Coupon:
    code = String(required=True, min_length=3, max_length=20, unique=True)
    description = String(required=True, max_length=200)
    discount_type = String(required=True, choices=DiscountType)
    discount_value = Float(required=True, min_value=0.0)
    min_order_amount = Float(default=0.0, min_value=0.0)
    max_discount_amount = Float(min_value=0.0)  # None means uncapped
    usage_limit = Integer(min_value=1)  # None means unlimited
    used_count = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    applicable_categories = Text()  # JSON array of category names
    applicable_product_ids = Text()  # JSON array of product identifiers
    is_first_order_only = Boolean(default=False)
    created_by = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def code_must_be_upper_case(self):
        if self.code and self.code != self.code.upper():
            raise ValidationError({"code": ["Coupon code must be upper-case"]})

    @invariant.post
    def percentage_must_be_within_range(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and self.discount_value is not None:
            if not 0 < self.discount_value <= 100:
                raise ValidationError({"discount_value": ["Percentage discount must be greater than 0 and at most 100"]})

    @invariant.post
    def end_date_must_follow_start_date(self):
        if self.start_date and self.end_date and as_utc(self.end_date) <= as_utc(self.start_date):
            raise ValidationError({"end_date": ["End date must be after start date"]})

    @invariant.post
    def used_count_must_stay_within_limit(self):
        if self.usage_limit is not None and (self.used_count or 0) > self.usage_limit:
            raise ValidationError({"used_count": ["Coupon usage cannot exceed its usage limit"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        description,
        discount_type,
        discount_value,
        end_date,
        start_date=None,
        min_order_amount=0.0,
        max_discount_amount=None,
        usage_limit=None,
        applicable_categories=None,
        applicable_product_ids=None,
        is_first_order_only=False,
        is_active=True,
        created_by=None,
    ):
        now = datetime.now(UTC)
        coupon = cls(
            code=normalize_code(code),
            description=description,
            discount_type=discount_type,
            discount_value=discount_value,
            min_order_amount=min_order_amount or 0.0,
            max_discount_amount=max_discount_amount,
            usage_limit=usage_limit,
            used_count=0,
            is_active=is_active,
            start_date=start_date or now,
            end_date=end_date,
            applicable_categories=json.dumps(list(applicable_categories or [])),
            applicable_product_ids=json.dumps([str(p) for p in applicable_product_ids or []]),
            is_first_order_only=is_first_order_only,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )

        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                discount_type=coupon.discount_type,
                discount_value=coupon.discount_value,
                start_date=coupon.start_date,
                end_date=coupon.end_date,
                created_by=created_by,
                created_at=now,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Restrictions
    # -------------------------------------------------------------------
    @property
    def categories(self) -> list[str]:
        return json.loads(self.applicable_categories) if self.applicable_categories else []

    @property
    def product_ids(self) -> list[str]:
        return json.loads(self.applicable_product_ids) if self.applicable_product_ids else []

    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit

    def is_currently_valid(self, now: datetime | None = None) -> bool:
        """Active, inside the validity window (inclusive), and not used up."""
        now = as_utc(now or datetime.now(UTC))
        return (
            bool(self.is_active)
            and as_utc(self.start_date) <= now <= as_utc(self.end_date)
            and not self.is_exhausted()
        )

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def update(self, **changes):
        """Apply administrator edits. Unknown keys and ``used_count`` are rejected."""
        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError({field: ["Field cannot be updated"] for field in unknown})

        if "code" in changes:
            changes["code"] = normalize_code(changes["code"])
        if "applicable_categories" in changes:
            changes["applicable_categories"] = json.dumps(list(changes["applicable_categories"] or []))
        if "applicable_product_ids" in changes:
            changes["applicable_product_ids"] = json.dumps(
                [str(p) for p in changes["applicable_product_ids"] or []]
            )

        changed = [field for field, value in changes.items() if getattr(self, field) != value]
        if not changed:
            return

        now = datetime.now(UTC)
        with atomic_change(self):
            for field in changed:
                setattr(self, field, changes[field])
            self.updated_at = now

        self.raise_(
            CouponUpdated(
                coupon_id=str(self.id),
                code=self.code,
                changed_fields=json.dumps(changed),
                updated_at=now,
            )
        )

    def toggle_status(self):
        now = datetime.now(UTC)
        self.is_active = not self.is_active
        self.updated_at = now

        self.raise_(
            CouponStatusToggled(
                coupon_id=str(self.id),
                code=self.code,
                is_active=self.is_active,
                toggled_at=now,
            )
        )
