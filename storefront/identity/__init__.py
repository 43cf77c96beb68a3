"""
Identity — verified caller identity behind a verifier protocol.

    verifier = StaticTokenVerifier({"tok-1": Identity("u1", email="a@b.com")})
    match await verifier.verify("tok-1"):
        case Ok(identity): ...
        case Error(e): ...       # UNAUTHORIZED
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from collections.abc import Mapping

from kungfu import Result, Ok, Error

from storefront.errors import EngineError, Errors

PLUS_PLAN = "plus"


@dataclass(frozen=True, slots=True)
class Identity:
    uid: str
    email: str | None = None
    phone: str | None = None
    name: str | None = None
    plan: str | None = None

    @property
    def is_plus_member(self) -> bool:
        return self.plan == PLUS_PLAN


class IdentityVerifier(Protocol):
    async def verify(self, token: str) -> Result[Identity, EngineError]: ...


class StaticTokenVerifier:
    """Fixed token table. Development and tests."""

    def __init__(self, identities: Mapping[str, Identity] | None = None) -> None:
        self._identities = dict(identities or {})

    def register(self, token: str, identity: Identity) -> None:
        self._identities[token] = identity

    async def verify(self, token: str) -> Result[Identity, EngineError]:
        identity = self._identities.get(token)
        if identity is None:
            return Error(Errors.unauthorized("invalid credential"))
        return Ok(identity)


__all__ = ("PLUS_PLAN", "Identity", "IdentityVerifier", "StaticTokenVerifier")
