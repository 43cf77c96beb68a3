"""
Error taxonomy.

Engine operations return Result[T, EngineError]. Graph nodes raise
EngineFailure, which entry points turn back into Error(...).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# ═══════════════════════════════════════════════════════════════════════════════
# Kinds
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorKind(Enum):
    INVALID_REQUEST = "invalid_request"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    ELIGIBILITY = "eligibility"
    CONFLICT = "conflict"
    EXTERNAL = "external"


class EligibilityFailure(Enum):
    """Coupon rule violations, with the message shown to the shopper."""

    STORE_MISMATCH = "This coupon is not valid for this store"
    LIMIT_REACHED = "Coupon usage limit reached"
    NOT_NEW_USER = "Coupon valid for new users only"
    NOT_FIRST_ORDER = "Coupon valid for first order only"
    ALREADY_USED = "You have already used this coupon"
    MEMBERS_ONLY = "Coupon valid for members only"
    BELOW_MINIMUM = "Minimum cart value not reached"
    TOO_FEW_PRODUCTS = "Not enough products in cart"
    PRODUCT_NOT_ELIGIBLE = "This coupon is not valid for the products in your cart"


# ═══════════════════════════════════════════════════════════════════════════════
# EngineError — value carried in Error(...)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class EngineError:
    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict[str, Any])
    failure: EligibilityFailure | None = None

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class Errors:
    @staticmethod
    def invalid_request(message: str, **details: Any) -> EngineError:
        return EngineError(ErrorKind.INVALID_REQUEST, message, details)

    @staticmethod
    def missing_guest_info(missing: list[str]) -> EngineError:
        return EngineError(
            ErrorKind.INVALID_REQUEST,
            "missing guest information",
            {"missingFields": missing},
        )

    @staticmethod
    def unauthorized(message: str = "not authorized") -> EngineError:
        return EngineError(ErrorKind.UNAUTHORIZED, message)

    @staticmethod
    def not_found(entity: str, ident: str) -> EngineError:
        return EngineError(
            ErrorKind.NOT_FOUND, f"{entity} not found", {"entity": entity, "id": ident}
        )

    @staticmethod
    def ineligible(failure: EligibilityFailure, **details: Any) -> EngineError:
        return EngineError(ErrorKind.ELIGIBILITY, failure.value, details, failure)

    @staticmethod
    def conflict(message: str, **details: Any) -> EngineError:
        return EngineError(ErrorKind.CONFLICT, message, details)

    @staticmethod
    def external(message: str, **details: Any) -> EngineError:
        return EngineError(ErrorKind.EXTERNAL, message, details)


# ═══════════════════════════════════════════════════════════════════════════════
# EngineFailure — raised inside graph nodes
# ═══════════════════════════════════════════════════════════════════════════════


class EngineFailure(Exception):
    def __init__(self, error: EngineError) -> None:
        super().__init__(error.message)
        self.error = error


__all__ = (
    "ErrorKind",
    "EligibilityFailure",
    "EngineError",
    "Errors",
    "EngineFailure",
)
