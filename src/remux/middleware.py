"""Middleware results and chain collapsing.

A middleware receives the per-request state, the request scope and the
response protocol. It either lets the request continue, possibly with a
replaced scope or protocol, or terminates it after writing its own response:

    async def require_token(state: Session, scope: HTTPScope, proto: HTTPProtocol) -> Outcome:
        if "authorization" not in scope.headers:
            proto.response_str(401, [("content-type", "text/plain")], "unauthorized")
            return TERMINATED
        return Continue(scope, proto)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from functools import reduce
from typing import Any, final

from .rsgi import HTTPProtocol, HTTPScope


@dataclass(slots=True, frozen=True)
class Continue:
    """Pass the (possibly replaced) scope and protocol further down the chain."""

    scope: HTTPScope
    proto: HTTPProtocol


@final
class Terminated:
    """The middleware has already written a complete response.

    Use the ``TERMINATED`` singleton rather than instantiating this.
    """

    __slots__ = ()
    _instance: Terminated | None = None

    def __new__(cls) -> Terminated:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "TERMINATED"

    def __bool__(self) -> bool:
        return False


TERMINATED = Terminated()

type Outcome = Continue | Terminated
type Middleware[T] = Callable[[T, HTTPScope, HTTPProtocol], Awaitable[Outcome]]


async def identity(_state: Any, scope: HTTPScope, proto: HTTPProtocol) -> Outcome:
    """Middleware that passes the request through unchanged."""
    return Continue(scope, proto)


def _link[T](inner: Middleware[T], outer: Middleware[T]) -> Middleware[T]:
    async def linked(state: T, scope: HTTPScope, proto: HTTPProtocol) -> Outcome:
        outcome = await outer(state, scope, proto)
        if isinstance(outcome, Terminated):
            return outcome
        return await inner(state, outcome.scope, outcome.proto)

    return linked


def collapse[T](chain: Iterable[Middleware[T]]) -> Middleware[T]:
    """Composes a chain into a single middleware.

    The first middleware in ``chain`` is outermost: it runs first, and each
    following middleware sees the scope and protocol returned by the previous
    one. The first ``TERMINATED`` stops the chain; nothing after it runs.

    An empty chain collapses to ``identity``.
    """
    members = tuple(chain)
    if not members:
        return identity
    if len(members) == 1:
        return members[0]
    # fold from the innermost outwards so the first member ends up outermost
    return reduce(_link, reversed(members[:-1]), members[-1])
