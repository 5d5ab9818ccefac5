"""HTML form method override.

HTML forms can only submit GET and POST, so a hidden ``_method`` field is a
common way to reach PUT and DELETE routes:

    <form method="post" action="/items/42">
      <input type="hidden" name="_method" value="DELETE">
    </form>

    router = Router(routes, preprocessors=[method_override()])
"""

import logging
from collections.abc import AsyncIterator
from urllib.parse import parse_qs

from .router import Preprocessor
from .rsgi import HTTPProtocol, HTTPScope, HTTPStreamTransport

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# methods whose body net/http-style servers parse as a form
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

# net/http maxFormSize
DEFAULT_MAX_BODY_SIZE = 10 << 20


class FormScope:
    """Wraps an HTTPScope, overriding method and carrying the parsed form."""

    __slots__ = ("_scope", "form", "method")

    def __init__(
        self, scope: HTTPScope, method: str, form: dict[str, list[str]]
    ) -> None:
        self._scope = scope
        self.method = method
        self.form = form

    def __getattr__(self, name: str) -> object:
        # _scope unset (e.g. mid copy.copy) must not recurse
        if name == "_scope":
            raise AttributeError(name)
        return getattr(self._scope, name)


class _BufferedHTTPProtocol:
    """Wraps HTTPProtocol to replay a request body that was already read."""

    __slots__ = ("_body", "_proto")

    def __init__(self, proto: HTTPProtocol, body: bytes) -> None:
        self._proto = proto
        self._body = body

    async def __call__(self) -> bytes:
        return self._body

    async def _replay(self) -> AsyncIterator[bytes]:
        if self._body:
            yield self._body

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._replay()

    async def client_disconnect(self) -> None:
        await self._proto.client_disconnect()

    def response_empty(self, status: int, headers: list[tuple[str, str]]) -> None:
        self._proto.response_empty(status, headers)

    def response_str(
        self, status: int, headers: list[tuple[str, str]], body: str
    ) -> None:
        self._proto.response_str(status, headers, body)

    def response_bytes(
        self, status: int, headers: list[tuple[str, str]], body: bytes
    ) -> None:
        self._proto.response_bytes(status, headers, body)

    def response_file(
        self, status: int, headers: list[tuple[str, str]], file: str
    ) -> None:
        self._proto.response_file(status, headers, file)

    def response_file_range(
        self,
        status: int,
        headers: list[tuple[str, str]],
        file: str,
        start: int,
        end: int,
    ) -> None:
        self._proto.response_file_range(status, headers, file, start, end)

    def response_stream(
        self, status: int, headers: list[tuple[str, str]]
    ) -> HTTPStreamTransport:
        return self._proto.response_stream(status, headers)


def declared_length(scope: HTTPScope) -> int | None:
    """Returns the request content-length, or None if absent or malformed."""
    raw = scope.headers.get("content-length")
    if raw is None:
        return None
    try:
        length = int(raw)
    except ValueError:
        return None
    return length if length >= 0 else None


def is_form(scope: HTTPScope) -> bool:
    content_type = scope.headers.get("content-type")
    if content_type is None:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == FORM_CONTENT_TYPE


def method_override(
    *,
    field: str = "_method",
    strip_field: bool = True,
    max_body_size: int = DEFAULT_MAX_BODY_SIZE,
) -> Preprocessor:
    """Create a preprocessor that takes the request method from a form field.

    Applies to POST, PUT and PATCH requests with a form-urlencoded body. The
    body is read once and replayed to downstream handlers; the returned scope
    is a `FormScope` exposing the parsed fields as ``scope.form``.

    Args:
        field: Name of the form field holding the method.
        strip_field: Remove ``field`` from ``scope.form`` once applied. When
            False, the field stays visible to handlers.
        max_body_size: Largest body, in bytes, that is read. Requests without
            a content-length, or declaring more than this, pass through
            unread and keep their method.

    Returns:
        Preprocessor for `Router(preprocessors=...)`.
    """
    if not field:
        msg = "field must not be empty"
        raise ValueError(msg)
    if max_body_size < 0:
        msg = f"max_body_size must be >= 0, got {max_body_size}"
        raise ValueError(msg)

    async def preprocess(
        scope: HTTPScope, proto: HTTPProtocol
    ) -> tuple[HTTPScope, HTTPProtocol]:
        if scope.method.upper() not in _BODY_METHODS or not is_form(scope):
            return scope, proto

        length = declared_length(scope)
        if length is None or length > max_body_size:
            logger.debug(
                "skipping method override: %s %s content-length %s, limit %d",
                scope.method,
                scope.path,
                length,
                max_body_size,
            )
            return scope, proto

        body = await proto()
        form = parse_qs(
            body.decode("utf-8", errors="replace"), keep_blank_values=True
        )
        method = scope.method
        values = form.get(field)
        if values and values[0]:
            method = values[0].upper()
            if strip_field:
                del form[field]
        wrapped = FormScope(scope, method, form)
        return wrapped, _BufferedHTTPProtocol(proto, body)  # type: ignore[return-value]

    return preprocess
