"""
Shipping fee — pure function of (lines, setting).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from collections.abc import Sequence

from kungfu import Result, Ok, Error

from storefront._types import ZERO, round_money
from storefront.errors import EngineError, Errors
from storefront.partition import PricedLine, subtotal
from storefront.shipping._types import ShippingSetting, ShippingType


class MissingWeight(ValueError):
    """WEIGHT_BASED shipping needs a weight on every line."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"line for product {product_id} has no weight")
        self.product_id = product_id


def compute_fee(lines: Sequence[PricedLine], setting: ShippingSetting) -> Decimal:
    """
    Standard shipping fee for one store's lines. Always >= 0.

    Raises MissingWeight for WEIGHT_BASED settings when a line has no weight.
    """
    if not setting.enabled:
        return ZERO

    match setting.shipping_type:
        case ShippingType.FREE:
            return ZERO

        case ShippingType.FLAT_RATE:
            threshold = setting.free_shipping_min
            # A zero threshold means "no free tier", not "always free".
            if threshold > ZERO and subtotal(lines) >= threshold:
                return ZERO
            return max(setting.flat_rate, ZERO)

        case ShippingType.PER_ITEM:
            count = sum(line.quantity for line in lines)
            fee = setting.per_item_fee * count
            if setting.max_item_fee is not None:
                fee = min(fee, setting.max_item_fee)
            return max(fee, ZERO)

        case ShippingType.WEIGHT_BASED:
            total_weight = ZERO
            for line in lines:
                if line.weight is None:
                    raise MissingWeight(line.product_id)
                total_weight += line.weight * line.quantity
            extra = max(ZERO, total_weight - setting.base_weight)
            return max(setting.base_weight_fee + setting.additional_weight_fee * extra, ZERO)


# ═══════════════════════════════════════════════════════════════════════════════
# Store charges — fee + delivery options
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ShippingCharge:
    fee: Decimal
    cod_fee: Decimal
    estimated_days: str

    @property
    def total(self) -> Decimal:
        return self.fee + self.cod_fee


def store_charge(
    lines: Sequence[PricedLine],
    setting: ShippingSetting,
    *,
    cash_on_delivery: bool = False,
    express: bool = False,
    ships_free: bool = False,
) -> Result[ShippingCharge, EngineError]:
    """
    Everything delivery adds to one store's order.

    Express replaces the standard fee. ships_free (plus members) zeroes the
    fee but not the COD surcharge.
    """
    if cash_on_delivery and not setting.enable_cod:
        return Error(Errors.invalid_request("cash on delivery is not available"))

    days = setting.estimated_days
    if express:
        if not setting.enable_express_shipping:
            return Error(Errors.invalid_request("express shipping is not available"))
        fee = setting.express_shipping_fee if setting.enabled else ZERO
        days = setting.express_estimated_days
    else:
        try:
            fee = compute_fee(lines, setting)
        except MissingWeight as e:
            return Error(
                Errors.invalid_request(
                    "weight is required for weight based shipping",
                    productId=e.product_id,
                )
            )

    if ships_free:
        fee = ZERO
    cod_fee = setting.cod_fee if cash_on_delivery else ZERO
    return Ok(ShippingCharge(round_money(fee), round_money(cod_fee), days))


__all__ = ("MissingWeight", "compute_fee", "ShippingCharge", "store_charge")
