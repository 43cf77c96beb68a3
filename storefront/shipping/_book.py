"""
Shipping settings storage.

Resolution order for a store: its own row → the "default" row → built-in
defaults.
"""

from __future__ import annotations

import logging

from storefront.db import ShippingSettingRow, SessionFactory
from storefront.shipping._types import DEFAULT_SCOPE, ShippingSetting

logger = logging.getLogger(__name__)


class ShippingBook:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session = session_factory

    async def resolve(self, store_id: str | None = None) -> ShippingSetting:
        """Settings in force for a store at this moment."""
        async with self._session() as session:
            for scope in (store_id, DEFAULT_SCOPE):
                if scope is None:
                    continue
                row = await session.get(ShippingSettingRow, scope)
                if row is not None:
                    return ShippingSetting.from_row(row)
        return ShippingSetting()

    async def save(
        self, setting: ShippingSetting, scope: str = DEFAULT_SCOPE
    ) -> ShippingSetting:
        """Upsert the row for scope."""
        async with self._session() as session:
            row = await session.get(ShippingSettingRow, scope)
            if row is None:
                row = ShippingSettingRow(id=scope)
                session.add(row)
            setting.write_to(row)
            await session.commit()
        logger.info("shipping settings saved for %s (%s)", scope, setting.shipping_type.value)
        return setting


__all__ = ("ShippingBook",)
