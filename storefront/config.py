"""
Engine configuration.

    config = EngineConfig.from_env()
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from collections.abc import Mapping

ENV_PREFIX = "STOREFRONT_"

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True, slots=True)
class EngineConfig:
    database_url: str = "sqlite+aiosqlite:///./storefront.db"
    currency: str = "aed"
    payment_session_ttl: timedelta = timedelta(minutes=30)
    guest_token_ttl: timedelta = timedelta(days=7)
    success_path: str = "/loading?nextUrl=orders"
    cancel_path: str = "/cart"
    members_ship_free: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """Build config from STOREFRONT_* variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str) -> str | None:
            return env.get(ENV_PREFIX + name)

        return cls(
            database_url=get("DATABASE_URL") or defaults.database_url,
            currency=(get("CURRENCY") or defaults.currency).lower(),
            payment_session_ttl=_minutes(
                get("PAYMENT_SESSION_TTL_MINUTES"), defaults.payment_session_ttl
            ),
            guest_token_ttl=_days(get("GUEST_TOKEN_TTL_DAYS"), defaults.guest_token_ttl),
            success_path=get("SUCCESS_PATH") or defaults.success_path,
            cancel_path=get("CANCEL_PATH") or defaults.cancel_path,
            members_ship_free=_flag(
                "MEMBERS_SHIP_FREE", get("MEMBERS_SHIP_FREE"), defaults.members_ship_free
            ),
            log_level=(get("LOG_LEVEL") or defaults.log_level).upper(),
        )


def _positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{ENV_PREFIX}{name} must be positive, got {value}")
    return value


def _minutes(raw: str | None, default: timedelta) -> timedelta:
    if raw is None:
        return default
    return timedelta(minutes=_positive_int("PAYMENT_SESSION_TTL_MINUTES", raw))


def _days(raw: str | None, default: timedelta) -> timedelta:
    if raw is None:
        return default
    return timedelta(days=_positive_int("GUEST_TOKEN_TTL_DAYS", raw))


def _flag(name: str, raw: str | None, default: bool) -> bool:
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = ("EngineConfig", "ENV_PREFIX", "configure_logging")
