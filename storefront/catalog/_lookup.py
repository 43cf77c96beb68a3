"""
Catalog lookup — read-only product projection used at order time.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from collections.abc import Sequence

from sqlalchemy import select

from kungfu import Result, Ok, Error

from storefront.db import ProductRow, StoreRow, SessionFactory
from storefront.errors import EngineError, Errors


@dataclass(frozen=True, slots=True)
class ProductSnapshot:
    id: str
    name: str
    price: Decimal
    mrp: Decimal
    store_id: str


def _snapshot(row: ProductRow) -> ProductSnapshot:
    return ProductSnapshot(
        id=row.id,
        name=row.name,
        price=row.price,
        mrp=row.mrp,
        store_id=row.store_id,
    )


class Catalog:
    """Product resolution. Never mutates products."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session = session_factory

    async def resolve(self, product_id: str) -> Result[ProductSnapshot, EngineError]:
        async with self._session() as session:
            row = await session.get(ProductRow, product_id)
            if row is None:
                return Error(Errors.not_found("Product", product_id))
            return Ok(_snapshot(row))

    async def resolve_many(
        self, product_ids: Sequence[str]
    ) -> Result[dict[str, ProductSnapshot], EngineError]:
        """
        Resolve all ids in one query.

        Fails on the first unknown id (input order), so callers never see a
        partial mapping.
        """
        wanted = set(product_ids)
        if not wanted:
            return Ok({})

        async with self._session() as session:
            rows = (
                await session.execute(select(ProductRow).where(ProductRow.id.in_(wanted)))
            ).scalars()
            found = {row.id: _snapshot(row) for row in rows}

        for product_id in product_ids:
            if product_id not in found:
                return Error(Errors.not_found("Product", product_id))
        return Ok(found)

    async def store_owned_by(self, user_id: str) -> Result[str, EngineError]:
        """Id of the store the user owns; UNAUTHORIZED when they own none."""
        async with self._session() as session:
            store_id = (
                await session.execute(
                    select(StoreRow.id).where(StoreRow.owner_id == user_id).limit(1)
                )
            ).scalar_one_or_none()
        if store_id is None:
            return Error(Errors.unauthorized("not a store owner"))
        return Ok(store_id)


__all__ = ("ProductSnapshot", "Catalog")
