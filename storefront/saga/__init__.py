"""
Saga — multi-step writes with compensation.

    from storefront import saga as S

    saga = S.step(action, compensate).then(lambda v: S.step(action2, compensate2))
    result = await S.run(saga)
"""

from storefront.saga._types import (
    Compensator,
    SagaStep,
    Then,
    Saga,
    SagaResult,
    SagaError,
)
from storefront.saga._step import step, from_async
from storefront.saga._run import run, run_compensators

__all__ = (
    "Compensator",
    "SagaStep",
    "Then",
    "Saga",
    "SagaResult",
    "SagaError",
    "step",
    "from_async",
    "run",
    "run_compensators",
)
