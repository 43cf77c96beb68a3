"""
Coupon book — coupon rows: active lookup, owner management, usage accounting.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, cast

from sqlalchemy import or_, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kungfu import Result, Ok, Error

from storefront._types import ZERO, as_utc, utcnow
from storefront.coupons._types import Coupon, CouponDraft, DiscountType
from storefront.db import CouponRow, SessionFactory
from storefront.errors import EligibilityFailure, EngineError, Errors

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return code.strip().upper()


# ═══════════════════════════════════════════════════════════════════════════════
# Usage accounting — atomic conditional increment
# ═══════════════════════════════════════════════════════════════════════════════


async def reserve_usage(session: AsyncSession, code: str) -> Result[None, EngineError]:
    """
    used_count = used_count + 1 WHERE used_count < usage_limit (or no limit).

    Runs in the caller's transaction. No row updated means the limit was hit
    by a concurrent checkout.
    """
    stmt = (
        update(CouponRow)
        .where(
            CouponRow.code == code,
            or_(
                CouponRow.usage_limit.is_(None),
                CouponRow.used_count < CouponRow.usage_limit,
            ),
        )
        .values(used_count=CouponRow.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    cursor = cast(CursorResult[Any], await session.execute(stmt))
    if cursor.rowcount == 0:
        return Error(Errors.ineligible(EligibilityFailure.LIMIT_REACHED, code=code))
    return Ok(None)


# ═══════════════════════════════════════════════════════════════════════════════
# Draft validation
# ═══════════════════════════════════════════════════════════════════════════════


def validate_draft(draft: CouponDraft) -> Result[CouponDraft, EngineError]:
    code = normalize_code(draft.code)
    if not code or not code.isalnum():
        return Error(Errors.invalid_request("coupon code must be alphanumeric", code=draft.code))
    if draft.discount <= ZERO:
        return Error(Errors.invalid_request("discount must be positive"))
    if draft.discount_type is DiscountType.PERCENTAGE and draft.discount > 100:
        return Error(Errors.invalid_request("percentage discount cannot exceed 100"))
    if draft.usage_limit is not None and draft.usage_limit < 1:
        return Error(Errors.invalid_request("usage limit must be at least 1"))
    if draft.min_product_count is not None and draft.min_product_count < 1:
        return Error(Errors.invalid_request("minimum product count must be at least 1"))
    if draft.min_price < ZERO:
        return Error(Errors.invalid_request("minimum price cannot be negative"))
    return Ok(draft)


def _apply_draft(row: CouponRow, draft: CouponDraft) -> None:
    row.description = draft.description
    row.discount = draft.discount
    row.discount_type = draft.discount_type.value
    row.expires_at = as_utc(draft.expires_at)
    row.is_active = draft.is_active
    row.usage_limit = draft.usage_limit
    row.for_new_user = draft.for_new_user
    row.for_member = draft.for_member
    row.first_order_only = draft.first_order_only
    row.one_time_per_user = draft.one_time_per_user
    row.min_price = draft.min_price
    row.min_product_count = draft.min_product_count
    row.specific_products = list(draft.specific_products)


# ═══════════════════════════════════════════════════════════════════════════════
# CouponBook
# ═══════════════════════════════════════════════════════════════════════════════


class CouponBook:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session = session_factory

    async def find_active(
        self, code: str, now: datetime | None = None
    ) -> Result[Coupon, EngineError]:
        """Unexpired, active coupon by case-insensitive code."""
        canonical = normalize_code(code)
        moment = as_utc(now) if now is not None else utcnow()
        async with self._session() as session:
            stmt = select(CouponRow).where(
                CouponRow.code == canonical,
                CouponRow.expires_at > moment,
                CouponRow.is_active.is_(True),
            )
            row = (await session.execute(stmt)).scalar_one_or_none()
            if row is None:
                return Error(Errors.not_found("Coupon", canonical))
            return Ok(Coupon.from_row(row))

    async def list_for_store(self, store_id: str) -> list[Coupon]:
        async with self._session() as session:
            rows = (
                await session.execute(
                    select(CouponRow)
                    .where(CouponRow.store_id == store_id)
                    .order_by(CouponRow.code)
                )
            ).scalars()
            return [Coupon.from_row(row) for row in rows]

    async def create(self, store_id: str, draft: CouponDraft) -> Result[Coupon, EngineError]:
        match validate_draft(draft):
            case Error(e):
                return Error(e)
            case Ok(valid):
                pass

        code = normalize_code(valid.code)
        async with self._session() as session:
            if await session.get(CouponRow, code) is not None:
                return Error(Errors.conflict("coupon code already exists", code=code))
            row = CouponRow(code=code, store_id=store_id, used_count=0)
            _apply_draft(row, valid)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError:
                # Lost a race with another create of the same code.
                await session.rollback()
                return Error(Errors.conflict("coupon code already exists", code=code))
            logger.info("coupon %s created for store %s", code, store_id)
            return Ok(Coupon.from_row(row))

    async def update(
        self, store_id: str, code: str, draft: CouponDraft
    ) -> Result[Coupon, EngineError]:
        match validate_draft(draft):
            case Error(e):
                return Error(e)
            case Ok(valid):
                pass

        canonical = normalize_code(code)
        async with self._session() as session:
            row = await session.get(CouponRow, canonical)
            if row is None or row.store_id != store_id:
                return Error(Errors.not_found("Coupon", canonical))
            _apply_draft(row, valid)
            await session.commit()
            return Ok(Coupon.from_row(row))

    async def delete(self, store_id: str, code: str) -> Result[None, EngineError]:
        canonical = normalize_code(code)
        async with self._session() as session:
            row = await session.get(CouponRow, canonical)
            if row is None or row.store_id != store_id:
                return Error(Errors.not_found("Coupon", canonical))
            await session.delete(row)
            await session.commit()
            logger.info("coupon %s deleted from store %s", canonical, store_id)
            return Ok(None)

    async def reserve_usage(self, code: str) -> Result[None, EngineError]:
        """Standalone increment in its own transaction."""
        async with self._session() as session:
            result = await reserve_usage(session, normalize_code(code))
            match result:
                case Ok(_):
                    await session.commit()
                case Error(_):
                    await session.rollback()
            return result


__all__ = (
    "normalize_code",
    "reserve_usage",
    "validate_draft",
    "CouponBook",
)
