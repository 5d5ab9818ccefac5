"""Route construction.

Routes are built once, usually at import time, from a shared middleware chain:

    public = Middlewares[Session](log_request)
    private = public.use(require_token)

    routes = [
        public.get(r"/", home),
        private.get(r"/items/([0-9]+)", get_item),
        private.delete(r"/items/([0-9]+)", delete_item),
    ]
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Literal

from .middleware import Middleware, Outcome, collapse
from .pattern import Pattern
from .rsgi import HTTPProtocol, HTTPScope, RSGIHTTPHandler

type HTTPMethod = Literal[
    "CONNECT", "DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT", "TRACE"
]
type AnyMethod = Literal["*"]
type HandlerFactory[T] = Callable[[tuple[str, ...]], tuple[T, RSGIHTTPHandler]]

ANY_METHOD = "*"

# RFC 9110 + RFC 5789 (PATCH)
METHODS = frozenset(
    {"CONNECT", "DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT", "TRACE"}
)


@dataclass(slots=True, frozen=True)
class Route[T]:
    """A method, a compiled pattern, a handler factory and a collapsed chain."""

    method: str
    pattern: Pattern
    factory: HandlerFactory[T]
    middleware: Middleware[T]

    def allows(self, method: str) -> bool:
        return self.method == ANY_METHOD or self.method == method


def new_route[T](
    method: HTTPMethod | AnyMethod | str,
    pattern: str,
    factory: HandlerFactory[T],
    middleware: Middlewares[T] | tuple[Middleware[T], ...] = (),
) -> Route[T]:
    """Builds a route, compiling ``pattern`` and collapsing ``middleware``.

    Raises:
        PatternError: ``pattern`` is not a valid regular expression.
        ValueError: ``method`` is neither an HTTP method nor ``"*"``.
    """
    method = method.upper()
    if method != ANY_METHOD and method not in METHODS:
        msg = f"unknown http method {method!r}"
        raise ValueError(msg)
    if isinstance(middleware, Middlewares):
        chain = middleware.collapse()
    else:
        chain = collapse(middleware)
    return Route(method, Pattern(pattern), factory, chain)


class Middlewares[T]:
    """An ordered, immutable middleware chain sharing one state type.

    The chain is itself a middleware: calling it runs the collapsed chain, so
    one chain can be embedded in another.
    """

    __slots__ = ("_chain", "_collapsed")

    _chain: tuple[Middleware[T], ...]
    _collapsed: Middleware[T]

    def __init__(self, *middleware: Middleware[T]) -> None:
        self._chain = middleware
        self._collapsed = collapse(middleware)

    def __iter__(self) -> Iterator[Middleware[T]]:
        return iter(self._chain)

    def __len__(self) -> int:
        return len(self._chain)

    def __repr__(self) -> str:
        names = ", ".join(getattr(m, "__qualname__", repr(m)) for m in self._chain)
        return f"Middlewares({names})"

    async def __call__(
        self, state: T, scope: HTTPScope, proto: HTTPProtocol
    ) -> Outcome:
        return await self._collapsed(state, scope, proto)

    def use(self, *middleware: Middleware[T]) -> Middlewares[T]:
        """Returns a new chain with ``middleware`` appended (innermost)."""
        return Middlewares(*self._chain, *middleware)

    def collapse(self) -> Middleware[T]:
        return self._collapsed

    def route(
        self,
        method: HTTPMethod | AnyMethod | str,
        pattern: str,
        factory: HandlerFactory[T],
    ) -> Route[T]:
        """Registers factory at pattern for method behind this chain."""
        return new_route(method, pattern, factory, self)

    def get(self, pattern: str, factory: HandlerFactory[T]) -> Route[T]:
        return new_route("GET", pattern, factory, self)

    def head(self, pattern: str, factory: HandlerFactory[T]) -> Route[T]:
        return new_route("HEAD", pattern, factory, self)

    def options(self, pattern: str, factory: HandlerFactory[T]) -> Route[T]:
        return new_route("OPTIONS", pattern, factory, self)

    def post(self, pattern: str, factory: HandlerFactory[T]) -> Route[T]:
        return new_route("POST", pattern, factory, self)

    def put(self, pattern: str, factory: HandlerFactory[T]) -> Route[T]:
        return new_route("PUT", pattern, factory, self)

    def patch(self, pattern: str, factory: HandlerFactory[T]) -> Route[T]:
        return new_route("PATCH", pattern, factory, self)

    def delete(self, pattern: str, factory: HandlerFactory[T]) -> Route[T]:
        return new_route("DELETE", pattern, factory, self)

    def all(self, pattern: str, factory: HandlerFactory[T]) -> Route[T]:
        """Registers factory at pattern for any method."""
        return new_route(ANY_METHOD, pattern, factory, self)


# chain-free shorthands
def get[T](pattern: str, factory: HandlerFactory[T]) -> Route[T]:
    return new_route("GET", pattern, factory)


def post[T](pattern: str, factory: HandlerFactory[T]) -> Route[T]:
    return new_route("POST", pattern, factory)


def put[T](pattern: str, factory: HandlerFactory[T]) -> Route[T]:
    return new_route("PUT", pattern, factory)


def patch[T](pattern: str, factory: HandlerFactory[T]) -> Route[T]:
    return new_route("PATCH", pattern, factory)


def delete[T](pattern: str, factory: HandlerFactory[T]) -> Route[T]:
    return new_route("DELETE", pattern, factory)


def all[T](pattern: str, factory: HandlerFactory[T]) -> Route[T]:  # noqa: A001
    return new_route(ANY_METHOD, pattern, factory)
