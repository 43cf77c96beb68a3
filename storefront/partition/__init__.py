"""
Partition — split one checkout into per-store line groups.

    from storefront import partition as P

    groups = await P.partition(items, catalog)   # Result[Partition, EngineError]
"""

from storefront.partition._partition import (
    LineItem,
    PricedLine,
    Partition,
    partition,
    subtotal,
)

__all__ = ("LineItem", "PricedLine", "Partition", "partition", "subtotal")
