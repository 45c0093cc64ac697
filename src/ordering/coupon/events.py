"""Domain events for the Coupon aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Coupon")
class CouponCreated:
    """An administrator created a new discount code."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    discount_value = Float(required=True)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    created_by = Identifier()
    created_at = DateTime(required=True)


@ordering.event(part_of="Coupon")
class CouponUpdated:
    """Coupon rules were edited by an administrator."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    changed_fields = Text(required=True)  # JSON: list of field names
    updated_at = DateTime(required=True)


@ordering.event(part_of="Coupon")
class CouponStatusToggled:
    """The manual enable/disable flag of a coupon was flipped."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    is_active = Boolean(required=True)
    toggled_at = DateTime(required=True)
