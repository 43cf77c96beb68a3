"""
Coupon evaluation — lookup + eligibility chain. Side-effect free.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from collections.abc import Sequence

from kungfu import Result, Ok, Error

from storefront.coupons._book import CouponBook
from storefront.coupons._history import CustomerRef, OrderHistory
from storefront.coupons._rules import EligibilityContext, check_all
from storefront.coupons._types import Coupon
from storefront.errors import EngineError


async def evaluate(
    code: str,
    *,
    cart_total: Decimal,
    product_ids: Sequence[str],
    store_id: str | None,
    customer: CustomerRef,
    is_plus_member: bool,
    book: CouponBook,
    history: OrderHistory,
    now: datetime | None = None,
) -> Result[Coupon, EngineError]:
    """
    Validate a coupon against a cart.

    Returns the coupon unchanged on success. used_count is only touched at
    order commit, so calling this any number of times changes nothing.

    Example:
        result = await evaluate(
            "save10",
            cart_total=Decimal("200"),
            product_ids=["p1"],
            store_id=None,
            customer=CustomerRef.user(uid),
            is_plus_member=False,
            book=book,
            history=history,
        )
    """
    match await book.find_active(code, now):
        case Error(e):
            return Error(e)
        case Ok(coupon):
            pass

    ctx = EligibilityContext(
        coupon=coupon,
        cart_total=cart_total,
        product_ids=tuple(product_ids),
        store_id=store_id,
        customer=customer,
        is_plus_member=is_plus_member,
        history=history,
    )
    match await check_all(ctx):
        case Error(e):
            return Error(e)
        case Ok(_):
            return Ok(coupon)


__all__ = ("evaluate",)
