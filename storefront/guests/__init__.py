"""
Guests — link guest orders to an account once the shopper signs up.

    result = await GuestLinker(session_factory).link(uid, email="a@b.com")
"""

from storefront.guests._link import LinkResult, GuestLinker

__all__ = ("LinkResult", "GuestLinker")
