"""
Shipping — per-store delivery fee from the settings in force.

    from storefront import shipping as Sh

    fee = Sh.compute_fee(lines, setting)              # pure
    charge = Sh.store_charge(lines, setting, cash_on_delivery=True)

Fee rules:
    disabled      → 0
    FREE          → 0
    FLAT_RATE     → 0 at/over free_shipping_min (when > 0), else flat_rate
    PER_ITEM      → per_item_fee × Σqty, capped at max_item_fee
    WEIGHT_BASED  → base_weight_fee + additional_weight_fee × max(0, W − base_weight)
"""

from storefront.shipping._types import DEFAULT_SCOPE, ShippingType, ShippingSetting
from storefront.shipping._fee import MissingWeight, compute_fee, ShippingCharge, store_charge
from storefront.shipping._book import ShippingBook

__all__ = (
    "DEFAULT_SCOPE",
    "ShippingType",
    "ShippingSetting",
    "MissingWeight",
    "compute_fee",
    "ShippingCharge",
    "store_charge",
    "ShippingBook",
)
