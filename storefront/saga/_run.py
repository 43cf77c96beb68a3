"""
Saga execution with automatic rollback.
"""

from __future__ import annotations

import logging
from typing import Any

from kungfu import Result, Ok, Error

from storefront.saga._types import (
    SagaStep,
    SagaResult,
    SagaError,
    Then,
    Saga,
    Compensator,
)

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Recorded Compensator
# ═══════════════════════════════════════════════════════════════════════════════

type RecordedCompensator = tuple[str, Any, Compensator[Any]]


class _Failed(Exception):
    def __init__(self, error: object, step_name: str) -> None:
        self.error = error
        self.step_name = step_name


# ═══════════════════════════════════════════════════════════════════════════════
# Step / chain walk
# ═══════════════════════════════════════════════════════════════════════════════


async def _run_step[T, E](
    step: SagaStep[T, E],
    compensators: list[RecordedCompensator],
) -> T:
    match await step.action:
        case Ok(value):
            if step.compensate is not None:
                compensators.append((step.name, value, step.compensate))
            return value
        case Error(e):
            raise _Failed(e, step.name)


async def _run_expr(
    saga: Saga[Any, Any],
    compensators: list[RecordedCompensator],
    counter: list[int],
) -> Any:
    match saga:
        case SagaStep():
            value = await _run_step(saga, compensators)
            counter[0] += 1
            return value
        case Then(inner, f):
            value = await _run_expr(inner, compensators, counter)
            return await _run_expr(f(value), compensators, counter)


# ═══════════════════════════════════════════════════════════════════════════════
# run_compensators() — Rollback
# ═══════════════════════════════════════════════════════════════════════════════


async def run_compensators(compensators: list[RecordedCompensator]) -> tuple[int, int]:
    """Run compensators in reverse. Returns (run, failed)."""
    comp_run = 0
    comp_failed = 0

    for name, value, comp in reversed(compensators):
        try:
            await comp(value)
            comp_run += 1
        except Exception:
            comp_failed += 1
            logger.exception("compensation of %s failed", name)

    return comp_run, comp_failed


# ═══════════════════════════════════════════════════════════════════════════════
# run() — Execute Saga
# ═══════════════════════════════════════════════════════════════════════════════


async def run[T, E](saga: Saga[T, E]) -> Result[SagaResult[T], SagaError[E]]:
    """
    Execute a step or a chain with automatic rollback on failure.

    On failure every recorded compensator runs, latest first.

    Example:
        from storefront import saga as S

        checkout = (
            S.step(persist, rollback, name="persist")
            .then(lambda orders: S.step(open_session(orders), expire, name="payment"))
            .then(lambda session: S.step(commit(session), name="commit"))
        )

        match await S.run(checkout):
            case Ok(r):
                print(r.value)
            case Error(e):
                print(f"failed at {e.step_failed}")
    """
    compensators: list[RecordedCompensator] = []
    counter = [0]

    try:
        value = await _run_expr(saga, compensators, counter)
    except _Failed as failed:
        if compensators:
            logger.warning(
                "saga failed at %s, compensating %d step(s)",
                failed.step_name,
                len(compensators),
            )
        comp_run, comp_failed = await run_compensators(compensators)
        return Error(SagaError(
            error=failed.error,
            step_failed=failed.step_name,
            compensators_run=comp_run,
            compensators_failed=comp_failed,
        ))

    return Ok(SagaResult(value=value, steps_executed=counter[0]))


__all__ = ("run", "run_compensators")
