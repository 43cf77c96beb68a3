"""
storefront — multi-vendor order and pricing engine.

    from storefront import orders as O      # Checkout, quotes, lifecycle
    from storefront import coupons as K     # Coupon rules and discounts
    from storefront import shipping as Sh   # Per-store delivery fees
    from storefront import saga as S        # Compensated multi-step writes
    from storefront import graph as G       # Pricing dependency graph

HTTP lives in storefront.web and is imported on demand.
"""

from storefront import saga
from storefront import graph
from storefront import coupons
from storefront import shipping
from storefront import orders
from storefront import guests
from storefront.config import EngineConfig
from storefront.errors import EngineError, EngineFailure, ErrorKind, Errors
from storefront._types import (
    Money,
    ZERO,
    round_money,
)

__version__ = "0.1.0"

__all__ = (
    "saga",
    "graph",
    "coupons",
    "shipping",
    "orders",
    "guests",
    "EngineConfig",
    "EngineError",
    "EngineFailure",
    "ErrorKind",
    "Errors",
    "Money",
    "ZERO",
    "round_money",
)
