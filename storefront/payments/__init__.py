"""
Payments — external checkout session boundary.

Only the provider knows whether a session was paid; confirm_payment()
asks it through session_status() before marking orders paid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Protocol

from storefront.db import new_id

logger = logging.getLogger(__name__)


class PaymentStatus(Enum):
    PAID = "paid"
    UNPAID = "unpaid"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class PaymentSessionRequest:
    amount: Decimal
    currency: str
    success_url: str
    cancel_url: str
    expires_at: datetime
    metadata: dict[str, str] = field(default_factory=dict[str, str])


@dataclass(frozen=True, slots=True)
class PaymentSession:
    id: str
    url: str


class PaymentProvider(Protocol):
    async def create_session(self, request: PaymentSessionRequest) -> PaymentSession: ...

    async def expire_session(self, session_id: str) -> None: ...

    async def session_status(self, session_id: str) -> PaymentStatus: ...


class PaymentProviderError(RuntimeError):
    pass


class SimulatedPaymentProvider:
    """
    In-process provider. Records every call; fail_next makes the next
    create_session or session_status raise. pay() stands in for the
    customer completing the hosted checkout.
    """

    def __init__(self, base_url: str = "https://pay.example.test/session") -> None:
        self.base_url = base_url
        self.created: list[tuple[PaymentSession, PaymentSessionRequest]] = []
        self.expired: list[str] = []
        self.paid: set[str] = set()
        self.fail_next = False

    def _maybe_fail(self) -> None:
        if self.fail_next:
            self.fail_next = False
            raise PaymentProviderError("payment provider unavailable")

    async def create_session(self, request: PaymentSessionRequest) -> PaymentSession:
        self._maybe_fail()
        session_id = f"cs_{new_id()}"
        session = PaymentSession(id=session_id, url=f"{self.base_url}/{session_id}")
        self.created.append((session, request))
        logger.info("payment session %s for %s %s", session.id, request.amount, request.currency)
        return session

    async def expire_session(self, session_id: str) -> None:
        self.expired.append(session_id)
        logger.info("payment session %s expired", session_id)

    def pay(self, session_id: str) -> None:
        self.paid.add(session_id)

    async def session_status(self, session_id: str) -> PaymentStatus:
        self._maybe_fail()
        if session_id in self.paid:
            return PaymentStatus.PAID
        if session_id in self.expired:
            return PaymentStatus.EXPIRED
        return PaymentStatus.UNPAID


__all__ = (
    "PaymentStatus",
    "PaymentSessionRequest",
    "PaymentSession",
    "PaymentProvider",
    "PaymentProviderError",
    "SimulatedPaymentProvider",
)
