"""
Order types — checkout request, per-store quote, order lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from storefront.coupons import Coupon, CustomerRef
from storefront.db import OrderRow
from storefront.identity import Identity
from storefront.partition import LineItem, PricedLine

# ═══════════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentMethod(Enum):
    COD = "COD"
    STRIPE = "STRIPE"

    @property
    def needs_confirmation(self) -> bool:
        return self is PaymentMethod.STRIPE


class OrderStatus(Enum):
    CREATED = "ORDER_PLACED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


_PROGRESSION = (
    OrderStatus.CREATED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)


def can_advance(current: OrderStatus, target: OrderStatus) -> bool:
    """Forward moves along CREATED → PROCESSING → SHIPPED → DELIVERED."""
    if current not in _PROGRESSION or target not in _PROGRESSION:
        return False
    return _PROGRESSION.index(target) > _PROGRESSION.index(current)


# ═══════════════════════════════════════════════════════════════════════════════
# Request
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class GuestInfo:
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    zip: str = ""

    def missing_fields(self) -> list[str]:
        required = ("name", "email", "phone", "address", "city", "state", "country")
        return [name for name in required if not getattr(self, name).strip()]


@dataclass(frozen=True, slots=True)
class CheckoutRequest:
    """
    One checkout. identity set → authenticated; otherwise guest must be given.
    payment_method is the raw value and is validated by the assembler.
    """

    items: tuple[LineItem, ...]
    payment_method: str
    identity: Identity | None = None
    guest: GuestInfo | None = None
    coupon_code: str | None = None
    address_id: str | None = None
    express: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# Pricing
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PricingInput:
    """What the pricing graph needs from a validated request."""

    items: tuple[LineItem, ...]
    customer: CustomerRef
    payment_method: PaymentMethod
    coupon_code: str | None = None
    is_plus_member: bool = False
    express: bool = False


@dataclass(frozen=True, slots=True)
class StoreQuote:
    """Priced order for one store. total = subtotal - discount + shipping_fee."""

    store_id: str
    lines: tuple[PricedLine, ...]
    subtotal: Decimal
    discount: Decimal
    shipping_fee: Decimal
    total: Decimal
    estimated_days: str
    coupon: Coupon | None = None


@dataclass(frozen=True, slots=True)
class CheckoutResult:
    order_ids: tuple[str, ...]
    redirect_url: str | None = None
    payment_session_id: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Stored order view
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderLine:
    product_id: str
    quantity: int
    price: Decimal


@dataclass(frozen=True, slots=True)
class Order:
    id: str
    store_id: str
    user_id: str | None
    address_id: str | None
    is_guest: bool
    subtotal: Decimal
    discount: Decimal
    shipping_fee: Decimal
    total: Decimal
    payment_method: PaymentMethod
    status: OrderStatus
    is_paid: bool
    is_coupon_used: bool
    coupon: dict[str, Any]
    created_at: datetime
    items: tuple[OrderLine, ...] = ()
    guest_name: str | None = None
    guest_email: str | None = None
    guest_phone: str | None = None
    tracking_id: str | None = None
    tracking_url: str | None = None
    courier: str | None = None

    @classmethod
    def from_row(cls, row: OrderRow) -> Order:
        return cls(
            id=row.id,
            store_id=row.store_id,
            user_id=row.user_id,
            address_id=row.address_id,
            is_guest=row.is_guest,
            subtotal=row.subtotal,
            discount=row.discount,
            shipping_fee=row.shipping_fee,
            total=row.total,
            payment_method=PaymentMethod(row.payment_method),
            status=OrderStatus(row.status),
            is_paid=row.is_paid,
            is_coupon_used=row.is_coupon_used,
            coupon=dict(row.coupon or {}),
            created_at=row.created_at,
            items=tuple(OrderLine(i.product_id, i.quantity, i.price) for i in row.items),
            guest_name=row.guest_name,
            guest_email=row.guest_email,
            guest_phone=row.guest_phone,
            tracking_id=row.tracking_id,
            tracking_url=row.tracking_url,
            courier=row.courier,
        )


@dataclass(frozen=True, slots=True)
class Tracking:
    tracking_id: str | None = None
    tracking_url: str | None = None
    courier: str | None = None


__all__ = (
    "PaymentMethod",
    "OrderStatus",
    "can_advance",
    "GuestInfo",
    "CheckoutRequest",
    "PricingInput",
    "StoreQuote",
    "CheckoutResult",
    "OrderLine",
    "Order",
    "Tracking",
)
