"""
Pricing graph.

    CheckoutNode ─► PartitionNode ─┬─► CouponNode ───┐
                                   └─► ShippingNode ─┴─► QuoteNode

CouponNode and ShippingNode only share PartitionNode, so they run
concurrently. Nodes raise EngineFailure; Compiled.execute turns it into
Error(...).
"""

from dataclasses import dataclass

from kungfu import Ok, Error, LazyCoroResult, Result

import combinators as C
from storefront import graph as G
from storefront._types import ZERO, round_money
from storefront.catalog import Catalog
from storefront.config import EngineConfig
from storefront.coupons import Coupon, CouponBook, OrderHistory, apply_discount, evaluate
from storefront.errors import EngineError, EngineFailure
from storefront.orders._types import PaymentMethod, PricingInput, StoreQuote
from storefront.partition import Partition, partition, subtotal
from storefront.shipping import ShippingBook, ShippingCharge, store_charge


@dataclass(frozen=True, slots=True)
class PricingServices:
    catalog: Catalog
    coupons: CouponBook
    history: OrderHistory
    shipping: ShippingBook
    config: EngineConfig


# ═══════════════════════════════════════════════════════════════════════════════
# Input
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class CheckoutNode:
    def __init__(self, data: PricingInput) -> None:
        self.data = data

    @classmethod
    def __compose__(cls, data: PricingInput) -> "CheckoutNode":
        return cls(data)


@G.node
class PartitionNode:
    """Every line priced from the catalog and grouped by store."""

    def __init__(self, groups: Partition) -> None:
        self.groups = groups

    @classmethod
    async def __compose__(
        cls, cart: CheckoutNode, services: PricingServices
    ) -> "PartitionNode":
        match await partition(cart.data.items, services.catalog):
            case Ok(groups):
                return cls(groups)
            case Error(e):
                raise EngineFailure(e)


# ═══════════════════════════════════════════════════════════════════════════════
# Adjustments
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class CouponNode:
    """
    Coupon evaluated once against the whole cart.

    No store is passed, so a store-scoped coupon is not rejected here;
    QuoteNode applies it only to the matching partition.
    """

    def __init__(self, coupon: Coupon | None) -> None:
        self.coupon = coupon

    @classmethod
    async def __compose__(
        cls,
        cart: CheckoutNode,
        groups: PartitionNode,
        services: PricingServices,
    ) -> "CouponNode":
        code = cart.data.coupon_code
        if not code:
            return cls(None)

        lines = [line for store_lines in groups.groups.values() for line in store_lines]
        result = await evaluate(
            code,
            cart_total=subtotal(lines),
            product_ids=[line.product_id for line in lines],
            store_id=None,
            customer=cart.data.customer,
            is_plus_member=cart.data.is_plus_member,
            book=services.coupons,
            history=services.history,
        )
        match result:
            case Ok(coupon):
                return cls(coupon)
            case Error(e):
                raise EngineFailure(e)


@G.node
class ShippingNode:
    """Per-store delivery charge from the settings in force for that store."""

    def __init__(self, charges: dict[str, ShippingCharge]) -> None:
        self.charges = charges

    @classmethod
    async def __compose__(
        cls,
        cart: CheckoutNode,
        groups: PartitionNode,
        services: PricingServices,
    ) -> "ShippingNode":
        data = cart.data
        ships_free = data.is_plus_member and services.config.members_ship_free

        def charge_for(store_id: str) -> LazyCoroResult[tuple[str, ShippingCharge], EngineError]:
            async def impl() -> Result[tuple[str, ShippingCharge], EngineError]:
                setting = await services.shipping.resolve(store_id)
                charge = store_charge(
                    groups.groups[store_id],
                    setting,
                    cash_on_delivery=data.payment_method is PaymentMethod.COD,
                    express=data.express,
                    ships_free=ships_free,
                )
                match charge:
                    case Ok(c):
                        return Ok((store_id, c))
                    case Error(e):
                        return Error(e)

            return LazyCoroResult(impl)

        result = await C.traverse_par(list(groups.groups), charge_for)()
        match result:
            case Ok(pairs):
                return cls(dict(pairs))
            case Error(e):
                raise EngineFailure(e)


# ═══════════════════════════════════════════════════════════════════════════════
# Quote
# ═══════════════════════════════════════════════════════════════════════════════


@G.node
class QuoteNode:
    """One StoreQuote per partition, in partition order."""

    def __init__(self, quotes: list[StoreQuote]) -> None:
        self.quotes = quotes

    @classmethod
    def __compose__(
        cls,
        groups: PartitionNode,
        coupon: CouponNode,
        shipping: ShippingNode,
    ) -> "QuoteNode":
        quotes: list[StoreQuote] = []
        for store_id, lines in groups.groups.items():
            items_total = round_money(subtotal(lines))
            applied = coupon.coupon if (
                coupon.coupon is not None and coupon.coupon.applies_to_store(store_id)
            ) else None
            discount = apply_discount(applied.discount, items_total) if applied else ZERO
            charge = shipping.charges[store_id]
            quotes.append(
                StoreQuote(
                    store_id=store_id,
                    lines=tuple(lines),
                    subtotal=items_total,
                    discount=discount,
                    shipping_fee=charge.total,
                    total=round_money(items_total - discount + charge.total),
                    estimated_days=charge.estimated_days,
                    coupon=applied,
                )
            )
        return cls(quotes)


pricing = G.graph(QuoteNode)


__all__ = (
    "PricingServices",
    "CheckoutNode",
    "PartitionNode",
    "CouponNode",
    "ShippingNode",
    "QuoteNode",
    "pricing",
)
