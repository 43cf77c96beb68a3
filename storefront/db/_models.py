"""
Database layer — SQLAlchemy declarative models.

Money columns are Numeric(12, 2) read back as Decimal.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def new_id() -> str:
    return uuid.uuid4().hex


# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Identity & Catalog
# ═══════════════════════════════════════════════════════════════════════════════


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    image: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cart: Mapped[Any] = mapped_column(JSON, nullable=False, default=dict)


class StoreRow(Base):
    __tablename__ = "stores"

    id: Mapped[str] = mapped_column(String(50), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_id: Mapped[str] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )


class AddressRow(Base):
    __tablename__ = "addresses"

    id: Mapped[str] = mapped_column(String(50), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    street: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    state: Mapped[str] = mapped_column(String(255), nullable=False)
    zip: Mapped[str] = mapped_column(String(20), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)


class ProductRow(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(50), primary_key=True, default=new_id)
    store_id: Mapped[str] = mapped_column(ForeignKey("stores.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    mrp: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Coupons & Shipping
# ═══════════════════════════════════════════════════════════════════════════════


class CouponRow(Base):
    __tablename__ = "coupons"

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    for_new_user: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    for_member: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    first_order_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    one_time_per_user: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    min_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    min_product_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    specific_products: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    store_id: Mapped[str | None] = mapped_column(
        ForeignKey("stores.id"), nullable=True, index=True
    )


class ShippingSettingRow(Base):
    """One row per scope: "default" or a store id."""

    __tablename__ = "shipping_settings"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False)
    shipping_type: Mapped[str] = mapped_column(String(20), nullable=False)
    flat_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    per_item_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    max_item_fee: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    weight_unit: Mapped[str] = mapped_column(String(10), nullable=False)
    base_weight: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    base_weight_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    additional_weight_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    free_shipping_min: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    estimated_days: Mapped[str] = mapped_column(String(20), nullable=False)
    enable_cod: Mapped[bool] = mapped_column(Boolean, nullable=False)
    cod_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    enable_express_shipping: Mapped[bool] = mapped_column(Boolean, nullable=False)
    express_shipping_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    express_estimated_days: Mapped[str] = mapped_column(String(20), nullable=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Orders
# ═══════════════════════════════════════════════════════════════════════════════


class OrderRow(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(50), primary_key=True, default=new_id)
    store_id: Mapped[str] = mapped_column(ForeignKey("stores.id"), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id"), nullable=True, index=True
    )
    address_id: Mapped[str | None] = mapped_column(ForeignKey("addresses.id"), nullable=True)

    is_guest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    guest_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    guest_email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    guest_phone: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)

    # Frozen at creation
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    shipping_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    is_coupon_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    coupon: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    coupon_code: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    # Mutable
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_session_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )
    tracking_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    tracking_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    courier: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    items: Mapped[list[OrderItemRow]] = relationship(
        back_populates="order",
        order_by="OrderItemRow.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class OrderItemRow(Base):
    __tablename__ = "order_items"

    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, primary_key=True)
    product_id: Mapped[str] = mapped_column(ForeignKey("products.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    order: Mapped[OrderRow] = relationship(back_populates="items")


class GuestUserRow(Base):
    __tablename__ = "guest_users"

    id: Mapped[str] = mapped_column(String(50), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    convert_token: Mapped[str] = mapped_column(String(128), nullable=False)
    token_expiry: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    account_created: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


__all__ = (
    "Base",
    "new_id",
    "UserRow",
    "StoreRow",
    "AddressRow",
    "ProductRow",
    "CouponRow",
    "ShippingSettingRow",
    "OrderRow",
    "OrderItemRow",
    "GuestUserRow",
)
