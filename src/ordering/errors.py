"""Domain errors raised by the ordering context beyond Protean's own.

Both classes extend Protean's ``ValidationError`` so they carry the usual
field-keyed ``messages`` dict and are handled wherever a ValidationError is.
The HTTP layer maps them to dedicated status codes.
"""

from protean.exceptions import ValidationError


class ConflictError(ValidationError):
    """The operation clashes with the current state of a stored object.

    Raised for duplicate coupon codes, deleting a coupon still referenced by
    orders, and order or payment transitions attempted from the wrong state.
    """


class CouponIneligibleError(ValidationError):
    """A coupon failed one of the eligibility rules for the given cart."""

    def __init__(self, reason: str, code: str | None = None):
        super().__init__({"coupon_code": [reason]})
        self.reason = reason
        self.code = code
