"""
Orders — per-store pricing and transactional checkout.

    assembler = OrderAssembler(session_factory, payments=provider, notifications=sink)

    match await assembler.create_order(request):
        case Ok(result):
            print(result.order_ids, result.redirect_url)
        case Error(e):
            print(e.kind, e.message)

Store total = subtotal - discount + shipping, rounded to cents.
"""

from storefront.orders._types import (
    PaymentMethod,
    OrderStatus,
    can_advance,
    GuestInfo,
    CheckoutRequest,
    PricingInput,
    StoreQuote,
    CheckoutResult,
    OrderLine,
    Order,
    Tracking,
)
from storefront.orders._nodes import (
    PricingServices,
    CheckoutNode,
    PartitionNode,
    CouponNode,
    ShippingNode,
    QuoteNode,
    pricing,
)
from storefront.orders._assembler import GUEST_USER_ID, OrderAssembler

__all__ = (
    # Types
    "PaymentMethod",
    "OrderStatus",
    "can_advance",
    "GuestInfo",
    "CheckoutRequest",
    "PricingInput",
    "StoreQuote",
    "CheckoutResult",
    "OrderLine",
    "Order",
    "Tracking",
    # Pricing graph
    "PricingServices",
    "CheckoutNode",
    "PartitionNode",
    "CouponNode",
    "ShippingNode",
    "QuoteNode",
    "pricing",
    # Assembler
    "GUEST_USER_ID",
    "OrderAssembler",
)
