"""
Order history — the queries coupon eligibility rules depend on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.sql import ColumnElement

from storefront.db import OrderRow, SessionFactory


@dataclass(frozen=True, slots=True)
class CustomerRef:
    """Who is checking out: a user id, or a guest e-mail."""

    user_id: str | None = None
    guest_email: str | None = None

    @classmethod
    def user(cls, user_id: str) -> CustomerRef:
        return cls(user_id=user_id)

    @classmethod
    def guest(cls, email: str) -> CustomerRef:
        return cls(guest_email=email)


class OrderHistory(Protocol):
    async def count_orders(self, customer: CustomerRef, store_id: str | None = None) -> int:
        """Prior orders, optionally within one store."""
        ...

    async def count_coupon_uses(self, customer: CustomerRef, code: str) -> int:
        """Prior orders that used the coupon with this frozen code."""
        ...


class SqlOrderHistory:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session = session_factory

    async def count_orders(self, customer: CustomerRef, store_id: str | None = None) -> int:
        conditions = [_owned_by(customer)]
        if store_id is not None:
            conditions.append(OrderRow.store_id == store_id)
        return await self._count(*conditions)

    async def count_coupon_uses(self, customer: CustomerRef, code: str) -> int:
        return await self._count(
            _owned_by(customer),
            OrderRow.is_coupon_used.is_(True),
            OrderRow.coupon_code == code,
        )

    async def _count(self, *conditions: ColumnElement[bool]) -> int:
        async with self._session() as session:
            stmt = select(func.count()).select_from(OrderRow).where(*conditions)
            return int((await session.execute(stmt)).scalar_one())


def _owned_by(customer: CustomerRef) -> ColumnElement[bool]:
    if customer.user_id is not None:
        return OrderRow.user_id == customer.user_id
    if customer.guest_email is not None:
        return (OrderRow.is_guest.is_(True)) & (OrderRow.guest_email == customer.guest_email)
    raise ValueError("CustomerRef needs a user id or a guest e-mail")


__all__ = ("CustomerRef", "OrderHistory", "SqlOrderHistory")
