"""
Store partitioner — group cart lines by owning store.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from collections.abc import Sequence

from kungfu import Result, Ok, Error

from storefront.catalog import Catalog
from storefront.errors import EngineError, Errors


@dataclass(frozen=True, slots=True)
class LineItem:
    """Cart line as supplied by the caller. weight is per unit, optional."""

    product_id: str
    quantity: int
    weight: Decimal | None = None


@dataclass(frozen=True, slots=True)
class PricedLine:
    """Line with the catalog price captured at order time."""

    product_id: str
    name: str
    quantity: int
    price: Decimal
    weight: Decimal | None = None

    @property
    def amount(self) -> Decimal:
        return self.price * self.quantity


type Partition = dict[str, list[PricedLine]]
"""store_id → lines, in first-seen order."""


async def partition(
    items: Sequence[LineItem],
    catalog: Catalog,
) -> Result[Partition, EngineError]:
    """
    Price every line and group by store.

    All or nothing: one unknown product fails the whole call.
    """
    for item in items:
        if item.quantity < 1:
            return Error(
                Errors.invalid_request(
                    "quantity must be at least 1", productId=item.product_id
                )
            )

    resolved = await catalog.resolve_many([item.product_id for item in items])
    match resolved:
        case Error(e):
            return Error(e)
        case Ok(products):
            pass

    groups: Partition = {}
    for item in items:
        product = products[item.product_id]
        groups.setdefault(product.store_id, []).append(
            PricedLine(
                product_id=product.id,
                name=product.name,
                quantity=item.quantity,
                price=product.price,
                weight=item.weight,
            )
        )
    return Ok(groups)


def subtotal(lines: Sequence[PricedLine]) -> Decimal:
    return sum((line.amount for line in lines), Decimal("0"))


__all__ = ("LineItem", "PricedLine", "Partition", "partition", "subtotal")
