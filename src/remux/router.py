"""Regular-expression HTTP router.

Inspired by the classic Go "regex table" routers: a flat, ordered list of
routes scanned top to bottom, first path match wins.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextvars import ContextVar

from .middleware import Terminated
from .route import Route
from .rsgi import HTTPProtocol, HTTPScope, HTTPStreamTransport, RSGIHTTPHandler

logger = logging.getLogger(__name__)

allowed_methods: ContextVar[tuple[str, ...]] = ContextVar("allowed_methods")
matched_route: ContextVar[str] = ContextVar("matched_route")

type Preprocessor = Callable[
    [HTTPScope, HTTPProtocol], Awaitable[tuple[HTTPScope, HTTPProtocol]]
]

_PLAIN_TEXT = [
    ("content-type", "text/plain; charset=utf-8"),
    ("x-content-type-options", "nosniff"),
]


async def not_found(_scope: HTTPScope, proto: HTTPProtocol) -> None:
    proto.response_str(404, list(_PLAIN_TEXT), "404 page not found\n")


async def method_not_allowed(_scope: HTTPScope, proto: HTTPProtocol) -> None:
    proto.response_str(405, list(_PLAIN_TEXT), "405 method not allowed\n")


class _AllowHTTPProtocol:
    """Wraps HTTPProtocol to add the allow header to whatever response is sent."""

    __slots__ = ("_allow", "_proto")

    def __init__(self, proto: HTTPProtocol, allow: tuple[str, ...]) -> None:
        self._proto = proto
        self._allow = ", ".join(allow)

    def _headers(self, headers: list[tuple[str, str]]) -> list[tuple[str, str]]:
        if any(name.lower() == "allow" for name, _ in headers):
            return headers
        return [*headers, ("allow", self._allow)]

    async def __call__(self) -> bytes:
        return await self._proto()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._proto.__aiter__()

    async def client_disconnect(self) -> None:
        await self._proto.client_disconnect()

    def response_empty(self, status: int, headers: list[tuple[str, str]]) -> None:
        self._proto.response_empty(status, self._headers(headers))

    def response_str(
        self, status: int, headers: list[tuple[str, str]], body: str
    ) -> None:
        self._proto.response_str(status, self._headers(headers), body)

    def response_bytes(
        self, status: int, headers: list[tuple[str, str]], body: bytes
    ) -> None:
        self._proto.response_bytes(status, self._headers(headers), body)

    def response_file(
        self, status: int, headers: list[tuple[str, str]], file: str
    ) -> None:
        self._proto.response_file(status, self._headers(headers), file)

    def response_file_range(
        self,
        status: int,
        headers: list[tuple[str, str]],
        file: str,
        start: int,
        end: int,
    ) -> None:
        self._proto.response_file_range(
            status, self._headers(headers), file, start, end
        )

    def response_stream(
        self, status: int, headers: list[tuple[str, str]]
    ) -> HTTPStreamTransport:
        return self._proto.response_stream(status, self._headers(headers))


class Router[T]:
    """An ordered table of routes sharing one state type, served over RSGI.

    The table is replaced as a whole, never edited in place, so a router can
    be shared between concurrent requests once published.
    """

    __slots__ = (
        "_method_not_allowed_handler",
        "_not_found_handler",
        "_preprocessors",
        "_routes",
    )
    _routes: tuple[Route[T], ...]
    _preprocessors: tuple[Preprocessor, ...]
    _not_found_handler: RSGIHTTPHandler
    _method_not_allowed_handler: RSGIHTTPHandler

    def __init__(
        self,
        routes: Iterable[Route[T]] = (),
        *,
        not_found_handler: RSGIHTTPHandler | None = None,
        method_not_allowed_handler: RSGIHTTPHandler | None = None,
        preprocessors: Iterable[Preprocessor] = (),
    ) -> None:
        self.routes = routes
        self._preprocessors = tuple(preprocessors)
        self._not_found_handler = (
            not_found_handler if not_found_handler is not None else not_found
        )
        self._method_not_allowed_handler = (
            method_not_allowed_handler
            if method_not_allowed_handler is not None
            else method_not_allowed
        )

    @property
    def routes(self) -> tuple[Route[T], ...]:
        return self._routes

    @routes.setter
    def routes(self, routes: Iterable[Route[T]]) -> None:
        """Publishes a new route table in a single assignment."""
        table = tuple(routes)
        for route in table:
            if not isinstance(route, Route):
                msg = f"expected Route, got {type(route).__name__}"
                raise TypeError(msg)
        self._routes = table
        logger.debug("published route table with %d routes", len(table))

    def __rsgi_init__(self, loop: object) -> None:
        """Called by granian when a worker starts."""

    def __rsgi_del__(self, loop: object) -> None:
        """Called by granian when a worker stops."""

    async def __rsgi__(self, scope: HTTPScope, proto: HTTPProtocol) -> None:
        for preprocess in self._preprocessors:
            scope, proto = await preprocess(scope, proto)

        path = scope.path
        method = scope.method.upper()
        allow: list[str] = []
        for route in self._routes:
            captures = route.pattern.match(path)
            if captures is None:
                continue
            if not route.allows(method):
                if route.method not in allow:
                    allow.append(route.method)
                continue
            await self._dispatch(route, captures, scope, proto)
            return

        if allow:
            logger.debug("method not allowed: %s %s, allow %s", method, path, allow)
            allowed = tuple(allow)
            token = allowed_methods.set(allowed)
            try:
                await self._method_not_allowed_handler(
                    scope, _AllowHTTPProtocol(proto, allowed)
                )
            finally:
                allowed_methods.reset(token)
            return

        logger.debug("not found: %s %s", method, path)
        await self._not_found_handler(scope, proto)

    async def _dispatch(
        self,
        route: Route[T],
        captures: tuple[str, ...],
        scope: HTTPScope,
        proto: HTTPProtocol,
    ) -> None:
        state, handler = route.factory(captures)
        token = matched_route.set(route.pattern.source)
        try:
            outcome = await route.middleware(state, scope, proto)
            if isinstance(outcome, Terminated):
                logger.debug(
                    "request terminated by middleware: %s %s",
                    scope.method,
                    scope.path,
                )
                return
            await handler(outcome.scope, outcome.proto)
        finally:
            matched_route.reset(token)
