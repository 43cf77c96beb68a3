"""
Eligibility rules — ordered chain, first failure wins.

Each rule: (EligibilityContext) -> Result[None, EngineError].
The order only affects which message the shopper sees.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from collections.abc import Awaitable, Callable

from kungfu import Result, Ok, Error

from storefront.coupons._history import CustomerRef, OrderHistory
from storefront.coupons._types import Coupon
from storefront.errors import EligibilityFailure, EngineError, Errors


@dataclass(frozen=True, slots=True)
class EligibilityContext:
    coupon: Coupon
    cart_total: Decimal
    product_ids: tuple[str, ...]
    store_id: str | None
    customer: CustomerRef
    is_plus_member: bool
    history: OrderHistory


type Rule = Callable[[EligibilityContext], Awaitable[Result[None, EngineError]]]

_PASS: Result[None, EngineError] = Ok(None)


def _fail(failure: EligibilityFailure, **details: object) -> Result[None, EngineError]:
    return Error(Errors.ineligible(failure, **details))


# ═══════════════════════════════════════════════════════════════════════════════
# Rules
# ═══════════════════════════════════════════════════════════════════════════════


async def store_scope(ctx: EligibilityContext) -> Result[None, EngineError]:
    coupon = ctx.coupon
    if coupon.store_id and ctx.store_id and coupon.store_id != ctx.store_id:
        return _fail(EligibilityFailure.STORE_MISMATCH)
    return _PASS


async def usage_limit(ctx: EligibilityContext) -> Result[None, EngineError]:
    coupon = ctx.coupon
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        return _fail(EligibilityFailure.LIMIT_REACHED)
    return _PASS


async def new_user(ctx: EligibilityContext) -> Result[None, EngineError]:
    if ctx.coupon.for_new_user and await ctx.history.count_orders(ctx.customer) > 0:
        return _fail(EligibilityFailure.NOT_NEW_USER)
    return _PASS


async def first_order(ctx: EligibilityContext) -> Result[None, EngineError]:
    coupon = ctx.coupon
    if not coupon.first_order_only:
        return _PASS
    # Scoped to the coupon's store when it has one, global otherwise.
    if await ctx.history.count_orders(ctx.customer, coupon.store_id) > 0:
        return _fail(EligibilityFailure.NOT_FIRST_ORDER)
    return _PASS


async def one_time(ctx: EligibilityContext) -> Result[None, EngineError]:
    coupon = ctx.coupon
    if coupon.one_time_per_user and (
        await ctx.history.count_coupon_uses(ctx.customer, coupon.code) > 0
    ):
        return _fail(EligibilityFailure.ALREADY_USED)
    return _PASS


async def members_only(ctx: EligibilityContext) -> Result[None, EngineError]:
    if ctx.coupon.for_member and not ctx.is_plus_member:
        return _fail(EligibilityFailure.MEMBERS_ONLY)
    return _PASS


async def min_price(ctx: EligibilityContext) -> Result[None, EngineError]:
    minimum = ctx.coupon.min_price
    if ctx.cart_total < minimum:
        return _fail(EligibilityFailure.BELOW_MINIMUM, minPrice=str(minimum))
    return _PASS


async def min_product_count(ctx: EligibilityContext) -> Result[None, EngineError]:
    minimum = ctx.coupon.min_product_count
    if minimum is not None and len(set(ctx.product_ids)) < minimum:
        return _fail(EligibilityFailure.TOO_FEW_PRODUCTS, minProductCount=minimum)
    return _PASS


async def specific_products(ctx: EligibilityContext) -> Result[None, EngineError]:
    eligible = ctx.coupon.specific_products
    if eligible and eligible.isdisjoint(ctx.product_ids):
        return _fail(EligibilityFailure.PRODUCT_NOT_ELIGIBLE)
    return _PASS


RULES: tuple[Rule, ...] = (
    store_scope,
    usage_limit,
    new_user,
    first_order,
    one_time,
    members_only,
    min_price,
    min_product_count,
    specific_products,
)


async def check_all(
    ctx: EligibilityContext,
    rules: tuple[Rule, ...] = RULES,
) -> Result[None, EngineError]:
    for rule in rules:
        result = await rule(ctx)
        if isinstance(result, Error):
            return result
    return _PASS


__all__ = (
    "EligibilityContext",
    "Rule",
    "RULES",
    "check_all",
    "store_scope",
    "usage_limit",
    "new_user",
    "first_order",
    "one_time",
    "members_only",
    "min_price",
    "min_product_count",
    "specific_products",
)
