"""
Persistence — SQLAlchemy models and session factory.

    from storefront import db

    session_factory, engine = await db.create_database(url)
"""

from storefront.db._models import (
    Base,
    new_id,
    UserRow,
    StoreRow,
    AddressRow,
    ProductRow,
    CouponRow,
    ShippingSettingRow,
    OrderRow,
    OrderItemRow,
    GuestUserRow,
)
from storefront.db._session import SessionFactory, create_database

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
    "SessionFactory",
    "create_database",
)
