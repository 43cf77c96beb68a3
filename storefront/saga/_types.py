"""
Saga types — steps, chains, outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Callable, Awaitable
from kungfu import LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Compensator
# ═══════════════════════════════════════════════════════════════════════════════

type Compensator[T] = Callable[[T], Awaitable[None]]
"""Receives the value the action produced and undoes it."""

# ═══════════════════════════════════════════════════════════════════════════════
# SagaStep / Then
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    """
    Action + optional compensator.

    The compensator is recorded once the action succeeds and runs only if a
    later step fails.
    """

    action: LazyCoroResult[T, E]
    compensate: Compensator[T] | None
    name: str = "step"

    def then[U](self, f: Callable[[T], SagaStep[U, E]]) -> Then[T, U, E]:
        return Then(self, f)


@dataclass(frozen=True, slots=True)
class Then[T, U, E]:
    """Sequential composition. inner may itself be a chain."""

    inner: SagaStep[T, E] | Then[object, T, E]
    f: Callable[[T], SagaStep[U, E]]

    def then[V](self, f: Callable[[U], SagaStep[V, E]]) -> Then[U, V, E]:
        return Then(self, f)  # type: ignore[arg-type]


type Saga[T, E] = SagaStep[T, E] | Then[object, T, E]

# ═══════════════════════════════════════════════════════════════════════════════
# Outcomes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    value: T
    steps_executed: int


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    """Failure with rollback status."""

    error: E
    step_failed: str
    compensators_run: int
    compensators_failed: int

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0


__all__ = (
    "Compensator",
    "SagaStep",
    "Then",
    "Saga",
    "SagaResult",
    "SagaError",
)
