"""
Saga step creation.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable
from kungfu import LazyCoroResult
from combinators import lift as L

from storefront.saga._types import SagaStep, Compensator


def step[T, E](
    action: LazyCoroResult[T, E],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "step",
) -> SagaStep[T, E]:
    """
    Compensated step from a lazy result.

    Example:
        persist = S.step(
            LazyCoroResult(lambda: writer.persist(quotes)),
            compensate=lambda _: session.rollback(),
            name="persist",
        )
    """
    return SagaStep(action=action, compensate=compensate, name=name)


def from_async[T, E](
    action: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
    compensate: Compensator[T] | None = None,
    *,
    name: str = "step",
) -> SagaStep[T, E]:
    """
    Step from a plain coroutine function; exceptions become Error(on_error(e)).

    Example:
        S.from_async(
            lambda: provider.create_session(request),
            on_error=lambda e: Errors.external(str(e)),
            compensate=lambda s: provider.expire_session(s.id),
        )
    """
    return SagaStep(
        action=L.catching_async(action, on_error=on_error),
        compensate=compensate,
        name=name,
    )


__all__ = ("step", "from_async")
