"""
Coupons — lookup, eligibility, discount math, owner management.

    from storefront import coupons as K

    result = await K.evaluate(code, cart_total=..., product_ids=..., ...)
    match result:
        case Ok(coupon):
            off = K.apply_discount(coupon.discount, store_total)
        case Error(e):
            print(e.failure)   # EligibilityFailure or None (not found)

Rules run in a fixed order and stop at the first failure:

    store_scope → usage_limit → new_user → first_order → one_time
        → members_only → min_price → min_product_count → specific_products
"""

from storefront.coupons._types import (
    DiscountType,
    Percentage,
    Fixed,
    Discount,
    discount_of,
    apply_discount,
    Coupon,
    CouponDraft,
)
from storefront.coupons._history import CustomerRef, OrderHistory, SqlOrderHistory
from storefront.coupons._rules import EligibilityContext, Rule, RULES, check_all
from storefront.coupons._book import (
    CouponBook,
    normalize_code,
    reserve_usage,
    validate_draft,
)
from storefront.coupons._evaluate import evaluate

__all__ = (
    # Types
    "DiscountType",
    "Percentage",
    "Fixed",
    "Discount",
    "discount_of",
    "apply_discount",
    "Coupon",
    "CouponDraft",
    # History
    "CustomerRef",
    "OrderHistory",
    "SqlOrderHistory",
    # Rules
    "EligibilityContext",
    "Rule",
    "RULES",
    "check_all",
    # Book
    "CouponBook",
    "normalize_code",
    "reserve_usage",
    "validate_draft",
    # Evaluate
    "evaluate",
)
