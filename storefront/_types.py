"""
Core types for storefront.

Re-exports from kungfu + money and clock helpers.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal, ROUND_HALF_UP

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

type Money = Decimal
"""Amounts are Decimals in the store currency (2 fraction digits)."""

ZERO = Decimal("0")
CENT = Decimal("0.01")


def round_money(value: Money) -> Money:
    """Round half-up to cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# ═══════════════════════════════════════════════════════════════════════════════
# Clock
# ═══════════════════════════════════════════════════════════════════════════════
# Timestamps are stored as naive UTC; SQLite keeps no offset.


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def as_utc(moment: datetime) -> datetime:
    """Aware → naive UTC. Naive values are taken as UTC already."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(UTC).replace(tzinfo=None)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Money
    "Money",
    "ZERO",
    "CENT",
    "round_money",
    # Clock
    "utcnow",
    "as_utc",
)
