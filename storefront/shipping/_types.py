"""
Shipping types.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from storefront.db import ShippingSettingRow

DEFAULT_SCOPE = "default"


class ShippingType(Enum):
    FLAT_RATE = "FLAT_RATE"
    PER_ITEM = "PER_ITEM"
    WEIGHT_BASED = "WEIGHT_BASED"
    FREE = "FREE"


@dataclass(frozen=True, slots=True)
class ShippingSetting:
    """Shipping terms for one scope. Defaults are the built-in fallback."""

    enabled: bool = True
    shipping_type: ShippingType = ShippingType.FLAT_RATE
    flat_rate: Decimal = Decimal("5")
    per_item_fee: Decimal = Decimal("2")
    max_item_fee: Decimal | None = None
    weight_unit: str = "kg"
    base_weight: Decimal = Decimal("1")
    base_weight_fee: Decimal = Decimal("5")
    additional_weight_fee: Decimal = Decimal("2")
    free_shipping_min: Decimal = Decimal("499")
    estimated_days: str = "3-5"
    enable_cod: bool = True
    cod_fee: Decimal = Decimal("0")
    enable_express_shipping: bool = False
    express_shipping_fee: Decimal = Decimal("20")
    express_estimated_days: str = "1-2"

    def with_changes(self, **changes: object) -> ShippingSetting:
        return replace(self, **changes)  # type: ignore[arg-type]

    @classmethod
    def from_row(cls, row: ShippingSettingRow) -> ShippingSetting:
        return cls(
            enabled=row.enabled,
            shipping_type=ShippingType(row.shipping_type),
            flat_rate=row.flat_rate,
            per_item_fee=row.per_item_fee,
            max_item_fee=row.max_item_fee,
            weight_unit=row.weight_unit,
            base_weight=row.base_weight,
            base_weight_fee=row.base_weight_fee,
            additional_weight_fee=row.additional_weight_fee,
            free_shipping_min=row.free_shipping_min,
            estimated_days=row.estimated_days,
            enable_cod=row.enable_cod,
            cod_fee=row.cod_fee,
            enable_express_shipping=row.enable_express_shipping,
            express_shipping_fee=row.express_shipping_fee,
            express_estimated_days=row.express_estimated_days,
        )

    def write_to(self, row: ShippingSettingRow) -> None:
        row.enabled = self.enabled
        row.shipping_type = self.shipping_type.value
        row.flat_rate = self.flat_rate
        row.per_item_fee = self.per_item_fee
        row.max_item_fee = self.max_item_fee
        row.weight_unit = self.weight_unit
        row.base_weight = self.base_weight
        row.base_weight_fee = self.base_weight_fee
        row.additional_weight_fee = self.additional_weight_fee
        row.free_shipping_min = self.free_shipping_min
        row.estimated_days = self.estimated_days
        row.enable_cod = self.enable_cod
        row.cod_fee = self.cod_fee
        row.enable_express_shipping = self.enable_express_shipping
        row.express_shipping_fee = self.express_shipping_fee
        row.express_estimated_days = self.express_estimated_days


__all__ = ("DEFAULT_SCOPE", "ShippingType", "ShippingSetting")
