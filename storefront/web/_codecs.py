"""
Wire models — pydantic in, pydantic out.

Requests expose to_domain(); responses expose from_domain(). JSON keys are
camelCase.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storefront.coupons import Coupon, CouponDraft, DiscountType
from storefront.guests import LinkResult
from storefront.identity import Identity
from storefront.orders import (
    CheckoutRequest,
    CheckoutResult,
    GuestInfo,
    Order,
    OrderStatus,
    StoreQuote,
    Tracking,
)
from storefront.partition import LineItem
from storefront.shipping import ShippingSetting, ShippingType


class Wire(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Checkout
# ═══════════════════════════════════════════════════════════════════════════════


class LineItemIn(Wire):
    product_id: str
    quantity: int
    weight: Decimal | None = None

    def to_domain(self) -> LineItem:
        return LineItem(self.product_id, self.quantity, self.weight)


class GuestInfoIn(Wire):
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    zip: str = ""

    def to_domain(self) -> GuestInfo:
        return GuestInfo(
            name=self.name,
            email=self.email,
            phone=self.phone,
            address=self.address or self.street,
            city=self.city,
            state=self.state,
            country=self.country,
            zip=self.zip,
        )


class CheckoutIn(Wire):
    items: list[LineItemIn] = Field(default_factory=list[LineItemIn])
    payment_method: str = ""
    coupon_code: str | None = None
    address_id: str | None = None
    is_guest: bool = False
    guest_info: GuestInfoIn | None = None
    express: bool = False

    def to_domain(self, identity: Identity | None) -> CheckoutRequest:
        return CheckoutRequest(
            items=tuple(item.to_domain() for item in self.items),
            payment_method=self.payment_method,
            identity=identity,
            guest=self.guest_info.to_domain() if self.guest_info else None,
            coupon_code=self.coupon_code,
            address_id=self.address_id,
            express=self.express,
        )


class CheckoutOut(Wire):
    message: str = "Orders Placed Successfully"
    order_ids: list[str]
    redirect_url: str | None = None
    session_id: str | None = None

    @classmethod
    def from_domain(cls, dom: CheckoutResult) -> CheckoutOut:
        return cls(
            order_ids=list(dom.order_ids),
            redirect_url=dom.redirect_url,
            session_id=dom.payment_session_id,
        )


class StoreQuoteOut(Wire):
    store_id: str
    subtotal: Decimal
    discount: Decimal
    shipping_fee: Decimal
    total: Decimal
    estimated_days: str
    coupon_code: str | None = None

    @classmethod
    def from_domain(cls, dom: StoreQuote) -> StoreQuoteOut:
        return cls(
            store_id=dom.store_id,
            subtotal=dom.subtotal,
            discount=dom.discount,
            shipping_fee=dom.shipping_fee,
            total=dom.total,
            estimated_days=dom.estimated_days,
            coupon_code=dom.coupon.code if dom.coupon else None,
        )


class QuoteOut(Wire):
    stores: list[StoreQuoteOut]
    total: Decimal

    @classmethod
    def from_domain(cls, dom: list[StoreQuote]) -> QuoteOut:
        return cls(
            stores=[StoreQuoteOut.from_domain(q) for q in dom],
            total=sum((q.total for q in dom), Decimal("0")),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class OrderLineOut(Wire):
    product_id: str
    quantity: int
    price: Decimal


class OrderOut(Wire):
    id: str
    store_id: str
    user_id: str | None
    is_guest: bool
    subtotal: Decimal
    discount: Decimal
    shipping_fee: Decimal
    total: Decimal
    payment_method: str
    status: str
    is_paid: bool
    is_coupon_used: bool
    coupon: dict[str, Any]
    created_at: datetime
    items: list[OrderLineOut]
    tracking_id: str | None = None
    tracking_url: str | None = None
    courier: str | None = None

    @classmethod
    def from_domain(cls, dom: Order) -> OrderOut:
        return cls(
            id=dom.id,
            store_id=dom.store_id,
            user_id=dom.user_id,
            is_guest=dom.is_guest,
            subtotal=dom.subtotal,
            discount=dom.discount,
            shipping_fee=dom.shipping_fee,
            total=dom.total,
            payment_method=dom.payment_method.value,
            status=dom.status.value,
            is_paid=dom.is_paid,
            is_coupon_used=dom.is_coupon_used,
            coupon=dom.coupon,
            created_at=dom.created_at,
            items=[
                OrderLineOut(product_id=i.product_id, quantity=i.quantity, price=i.price)
                for i in dom.items
            ],
            tracking_id=dom.tracking_id,
            tracking_url=dom.tracking_url,
            courier=dom.courier,
        )


class OrderListOut(Wire):
    orders: list[OrderOut]


class StatusIn(Wire):
    status: str
    tracking_id: str | None = None
    tracking_url: str | None = None
    courier: str | None = None

    def to_domain(self) -> tuple[OrderStatus | None, Tracking]:
        try:
            status: OrderStatus | None = OrderStatus(self.status)
        except ValueError:
            status = None
        return status, Tracking(self.tracking_id, self.tracking_url, self.courier)


class PaymentConfirmIn(Wire):
    session_id: str


class PaymentConfirmOut(Wire):
    order_ids: list[str]


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons
# ═══════════════════════════════════════════════════════════════════════════════


class CouponCheckIn(Wire):
    code: str
    cart_total: Decimal = Decimal("0")
    product_ids: list[str] = Field(default_factory=list[str])
    store_id: str | None = None


class CouponOut(Wire):
    code: str
    description: str
    discount: Decimal
    discount_type: str
    expires_at: datetime
    is_active: bool
    usage_limit: int | None
    used_count: int
    for_new_user: bool
    for_member: bool
    first_order_only: bool
    one_time_per_user: bool
    min_price: Decimal
    min_product_count: int | None
    specific_products: list[str]
    store_id: str | None

    @classmethod
    def from_domain(cls, dom: Coupon) -> CouponOut:
        return cls(
            code=dom.code,
            description=dom.description,
            discount=dom.discount.value,
            discount_type=dom.discount_type.value,
            expires_at=dom.expires_at,
            is_active=dom.is_active,
            usage_limit=dom.usage_limit,
            used_count=dom.used_count,
            for_new_user=dom.for_new_user,
            for_member=dom.for_member,
            first_order_only=dom.first_order_only,
            one_time_per_user=dom.one_time_per_user,
            min_price=dom.min_price,
            min_product_count=dom.min_product_count,
            specific_products=sorted(dom.specific_products),
            store_id=dom.store_id,
        )


class CouponCheckOut(Wire):
    coupon: CouponOut


class CouponListOut(Wire):
    coupons: list[CouponOut]


class CouponIn(Wire):
    code: str
    discount: Decimal
    discount_type: DiscountType = DiscountType.PERCENTAGE
    expires_at: datetime
    description: str = ""
    is_active: bool = True
    usage_limit: int | None = None
    for_new_user: bool = False
    for_member: bool = False
    first_order_only: bool = False
    one_time_per_user: bool = False
    min_price: Decimal = Decimal("0")
    min_product_count: int | None = None
    specific_products: list[str] = Field(default_factory=list[str])

    def to_domain(self) -> CouponDraft:
        return CouponDraft(
            code=self.code,
            discount=self.discount,
            discount_type=self.discount_type,
            expires_at=self.expires_at,
            description=self.description,
            is_active=self.is_active,
            usage_limit=self.usage_limit,
            for_new_user=self.for_new_user,
            for_member=self.for_member,
            first_order_only=self.first_order_only,
            one_time_per_user=self.one_time_per_user,
            min_price=self.min_price,
            min_product_count=self.min_product_count,
            specific_products=tuple(self.specific_products),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Shipping
# ═══════════════════════════════════════════════════════════════════════════════


class ShippingSettingWire(Wire):
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
    enable_cod: bool = Field(default=True, alias="enableCOD")
    cod_fee: Decimal = Decimal("0")
    enable_express_shipping: bool = False
    express_shipping_fee: Decimal = Decimal("20")
    express_estimated_days: str = "1-2"

    def to_domain(self) -> ShippingSetting:
        return ShippingSetting(**self.model_dump())

    @classmethod
    def from_domain(cls, dom: ShippingSetting) -> ShippingSettingWire:
        return cls(
            enabled=dom.enabled,
            shipping_type=dom.shipping_type,
            flat_rate=dom.flat_rate,
            per_item_fee=dom.per_item_fee,
            max_item_fee=dom.max_item_fee,
            weight_unit=dom.weight_unit,
            base_weight=dom.base_weight,
            base_weight_fee=dom.base_weight_fee,
            additional_weight_fee=dom.additional_weight_fee,
            free_shipping_min=dom.free_shipping_min,
            estimated_days=dom.estimated_days,
            enable_cod=dom.enable_cod,
            cod_fee=dom.cod_fee,
            enable_express_shipping=dom.enable_express_shipping,
            express_shipping_fee=dom.express_shipping_fee,
            express_estimated_days=dom.express_estimated_days,
        )


class ShippingOut(Wire):
    setting: ShippingSettingWire


# ═══════════════════════════════════════════════════════════════════════════════
# Guest linking
# ═══════════════════════════════════════════════════════════════════════════════


class LinkIn(Wire):
    email: str | None = None
    phone: str | None = None


class LinkOut(Wire):
    message: str
    linked: bool
    count: int

    @classmethod
    def from_domain(cls, dom: LinkResult) -> LinkOut:
        return cls(message=dom.message, linked=dom.linked, count=dom.count)


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorOut(BaseModel):
    error: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict[str, Any])


__all__ = (
    "LineItemIn",
    "GuestInfoIn",
    "CheckoutIn",
    "CheckoutOut",
    "StoreQuoteOut",
    "QuoteOut",
    "OrderLineOut",
    "OrderOut",
    "OrderListOut",
    "StatusIn",
    "PaymentConfirmIn",
    "PaymentConfirmOut",
    "CouponCheckIn",
    "CouponOut",
    "CouponCheckOut",
    "CouponListOut",
    "CouponIn",
    "ShippingSettingWire",
    "ShippingOut",
    "LinkIn",
    "LinkOut",
    "ErrorOut",
)
