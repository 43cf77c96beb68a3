"""
Graph runner — thin layer over nodnod.

Nodes are injected by runtime type; the target's dependencies are
discovered from its __compose__ signature.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, cast
from collections.abc import Callable, Coroutine

from kungfu import Result, Ok, Error
from nodnod import Scope, Value, EventLoopAgent, Node

from storefront.errors import EngineError, EngineFailure


# ═══════════════════════════════════════════════════════════════════════════════
# TypedScope
# ═══════════════════════════════════════════════════════════════════════════════


class TypedScope:
    """Type-keyed wrapper around nodnod.Scope."""

    __slots__ = ("_scope",)

    def __init__(self, detail: str = "scope") -> None:
        self._scope = Scope(detail=detail)

    @property
    def inner(self) -> Scope:
        return self._scope

    def inject(self, value: object) -> TypedScope:
        self._scope.push(Value(cast(type[Any], type(value)), value))
        return self

    def get[T](self, typ: type[T]) -> T:
        result = self._scope.get(typ)
        if result is None:
            raise KeyError(f"{typ.__name__} not found in scope")
        return cast(T, result.value)

    async def __aenter__(self) -> TypedScope:
        await self._scope.__aenter__()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self._scope.__aexit__(*args)


# ═══════════════════════════════════════════════════════════════════════════════
# Compiled — agent built once, run per request
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class Compiled[T]:
    """
    Pre-built graph for one target node.

        pricing = graph(QuoteNode)
        node = await pricing(cart, services)
        result = await pricing.execute(cart, services)
    """

    _target: type[T]
    _agent: EventLoopAgent

    async def __call__(self, *inputs: object) -> T:
        async with TypedScope(detail=self._target.__name__) as scope:
            for value in inputs:
                scope.inject(value)

            run_method = cast(
                Callable[[Scope, dict[type[Any], Scope]], Coroutine[Any, Any, None]],
                getattr(self._agent, "run"),
            )
            await run_method(scope.inner, {})

            return scope.get(self._target)

    async def execute(self, *inputs: object) -> Result[T, EngineError]:
        """Run and turn an EngineFailure raised by any node into Error."""
        try:
            return Ok(await self(*inputs))
        except EngineFailure as e:
            return Error(e.error)


def graph[T](target: type[T]) -> Compiled[T]:
    all_nodes: set[type[Node[Any, Any]]] = {cast(type[Node[Any, Any]], target)}
    return Compiled(_target=target, _agent=EventLoopAgent.build(all_nodes))


async def compose[T](target: type[T], *inputs: object) -> T:
    """
    One-shot run.

        quote = await compose(QuoteNode, cart, services)
    """
    return await graph(target)(*inputs)


__all__ = ("TypedScope", "Compiled", "graph", "compose")
