"""
Coupon types — coupon terms, discount variants, frozen snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from storefront._types import ZERO, round_money
from storefront.db import CouponRow

# ═══════════════════════════════════════════════════════════════════════════════
# Discount — closed variant
# ═══════════════════════════════════════════════════════════════════════════════


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True, slots=True)
class Percentage:
    value: Decimal

    def amount(self, total: Decimal) -> Decimal:
        return min(total * self.value / 100, total)


@dataclass(frozen=True, slots=True)
class Fixed:
    value: Decimal

    def amount(self, total: Decimal) -> Decimal:
        return min(self.value, total)


type Discount = Percentage | Fixed


def discount_of(kind: DiscountType, value: Decimal) -> Discount:
    match kind:
        case DiscountType.PERCENTAGE:
            return Percentage(value)
        case DiscountType.FIXED:
            return Fixed(value)


def apply_discount(discount: Discount, total: Decimal) -> Decimal:
    """Discount amount for one store total. Never more than the total."""
    if total <= ZERO:
        return ZERO
    return round_money(discount.amount(total))


# ═══════════════════════════════════════════════════════════════════════════════
# Coupon
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Coupon:
    code: str
    discount: Discount
    expires_at: datetime
    is_active: bool = True
    description: str = ""
    usage_limit: int | None = None
    used_count: int = 0
    for_new_user: bool = False
    for_member: bool = False
    first_order_only: bool = False
    one_time_per_user: bool = False
    min_price: Decimal = ZERO
    min_product_count: int | None = None
    specific_products: frozenset[str] = field(default_factory=frozenset[str])
    store_id: str | None = None

    @property
    def discount_type(self) -> DiscountType:
        match self.discount:
            case Percentage():
                return DiscountType.PERCENTAGE
            case Fixed():
                return DiscountType.FIXED

    def applies_to_store(self, store_id: str) -> bool:
        return self.store_id is None or self.store_id == store_id

    def snapshot(self) -> dict[str, Any]:
        """Immutable copy of the terms, stored on the order."""
        return {
            "code": self.code,
            "description": self.description,
            "discount": str(self.discount.value),
            "discountType": self.discount_type.value,
            "expiresAt": self.expires_at.isoformat(),
            "usageLimit": self.usage_limit,
            "forNewUser": self.for_new_user,
            "forMember": self.for_member,
            "firstOrderOnly": self.first_order_only,
            "oneTimePerUser": self.one_time_per_user,
            "minPrice": str(self.min_price),
            "minProductCount": self.min_product_count,
            "specificProducts": sorted(self.specific_products),
            "storeId": self.store_id,
        }

    @classmethod
    def from_row(cls, row: CouponRow) -> Coupon:
        return cls(
            code=row.code,
            discount=discount_of(DiscountType(row.discount_type), row.discount),
            expires_at=row.expires_at,
            is_active=row.is_active,
            description=row.description,
            usage_limit=row.usage_limit,
            used_count=row.used_count,
            for_new_user=row.for_new_user,
            for_member=row.for_member,
            first_order_only=row.first_order_only,
            one_time_per_user=row.one_time_per_user,
            min_price=row.min_price,
            min_product_count=row.min_product_count,
            specific_products=frozenset(row.specific_products or ()),
            store_id=row.store_id,
        )


@dataclass(frozen=True, slots=True)
class CouponDraft:
    """Store-owner input for create/update. used_count is never taken from input."""

    code: str
    discount: Decimal
    discount_type: DiscountType
    expires_at: datetime
    description: str = ""
    is_active: bool = True
    usage_limit: int | None = None
    for_new_user: bool = False
    for_member: bool = False
    first_order_only: bool = False
    one_time_per_user: bool = False
    min_price: Decimal = ZERO
    min_product_count: int | None = None
    specific_products: tuple[str, ...] = ()


__all__ = (
    "DiscountType",
    "Percentage",
    "Fixed",
    "Discount",
    "discount_of",
    "apply_discount",
    "Coupon",
    "CouponDraft",
)
