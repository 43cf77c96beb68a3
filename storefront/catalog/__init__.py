"""
Catalog — product id → current price, MRP and owning store.

    from storefront.catalog import Catalog

    result = await Catalog(session_factory).resolve("p1")
"""

from storefront.catalog._lookup import ProductSnapshot, Catalog

__all__ = ("ProductSnapshot", "Catalog")
