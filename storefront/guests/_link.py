"""
Guest conversion — move guest orders onto a real account.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, cast

from sqlalchemy import or_, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.sql import ColumnElement

from kungfu import Result, Ok, Error

from storefront.db import GuestUserRow, OrderRow, SessionFactory, UserRow
from storefront.errors import EngineError, Errors
from storefront._types import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LinkResult:
    linked: bool
    count: int = 0
    message: str = "No guest orders found"


def _contact_match(
    email: str | None,
    phone: str | None,
    email_col: Any,
    phone_col: Any,
) -> ColumnElement[bool]:
    clauses: list[ColumnElement[bool]] = []
    if email:
        clauses.append(email_col == email)
    if phone:
        clauses.append(phone_col == phone)
    return or_(*clauses)


class GuestLinker:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session = session_factory

    async def link(
        self,
        user_id: str,
        *,
        email: str | None = None,
        phone: str | None = None,
    ) -> Result[LinkResult, EngineError]:
        """
        Reassign guest orders matching email or phone to user_id.

        One transaction: the orders, the user row and the guest record change
        together or not at all. A second call with no new guest orders
        returns linked=False.
        """
        email = (email or "").strip() or None
        phone = (phone or "").strip() or None
        if email is None and phone is None:
            return Error(Errors.invalid_request("email or phone required"))

        async with self._session() as session:
            guest = (
                await session.execute(
                    select(GuestUserRow)
                    .where(
                        _contact_match(email, phone, GuestUserRow.email, GuestUserRow.phone),
                        GuestUserRow.account_created.is_(False),
                    )
                    .limit(1)
                )
            ).scalar_one_or_none()
            if guest is None:
                return Ok(LinkResult(linked=False))

            if await session.get(UserRow, user_id) is None:
                session.add(UserRow(id=user_id, name=guest.name, email=email or "", image="", cart={}))
                await session.flush()

            stmt = (
                update(OrderRow)
                .where(
                    OrderRow.is_guest.is_(True),
                    _contact_match(email, phone, OrderRow.guest_email, OrderRow.guest_phone),
                )
                .values(user_id=user_id, is_guest=False, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            count = cast(CursorResult[Any], await session.execute(stmt)).rowcount
            if count == 0:
                await session.rollback()
                return Ok(LinkResult(linked=False))

            guest.account_created = True
            await session.commit()

        logger.info("linked %d guest order(s) to user %s", count, user_id)
        return Ok(LinkResult(
            linked=True,
            count=count,
            message=f"Successfully linked {count} guest order(s) to your account",
        ))


__all__ = ("LinkResult", "GuestLinker")
