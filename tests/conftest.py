from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from typing import Literal

from remux.rsgi import HTTPScope


@dataclass
class MockHTTPScope:
    proto: Literal["http"] = "http"
    http_version: Literal["1", "1.1", "2"] = "1.1"
    rsgi_version: str = "1.0"
    server: str = "localhost"
    client: str = "127.0.0.1"
    scheme: str = "http"
    method: str = "GET"
    path: str = "/"
    query_string: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    authority: str | None = None


class MockHTTPStreamTransport:
    """Mock stream transport that captures sent data."""

    def __init__(self) -> None:
        self.chunks: list[bytes] = []

    async def send_bytes(self, data: bytes) -> None:
        self.chunks.append(data)

    async def send_str(self, data: str) -> None:
        self.chunks.append(data.encode("utf-8"))


class MockHTTPProtocol:
    """Mock protocol that serves a fixed body and captures response data."""

    def __init__(self, body: bytes = b"") -> None:
        self.body = body
        self.reads = 0
        self.responses = 0
        self.response_status: int | None = None
        self.response_headers: list[tuple[str, str]] | None = None
        self.response_body: bytes | None = None

    async def __call__(self) -> bytes:
        self.reads += 1
        return self.body

    async def _chunks(self) -> AsyncIterator[bytes]:
        self.reads += 1
        yield self.body

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._chunks()

    async def client_disconnect(self) -> None:
        raise NotImplementedError

    def _record(
        self, status: int, headers: list[tuple[str, str]], body: bytes
    ) -> None:
        self.responses += 1
        self.response_status = status
        self.response_headers = headers
        self.response_body = body

    def header(self, name: str) -> str | None:
        for key, value in self.response_headers or []:
            if key.lower() == name:
                return value
        return None

    def response_empty(self, status: int, headers: list[tuple[str, str]]) -> None:
        self._record(status, headers, b"")

    def response_str(
        self, status: int, headers: list[tuple[str, str]], body: str
    ) -> None:
        self._record(status, headers, body.encode("utf-8"))

    def response_bytes(
        self, status: int, headers: list[tuple[str, str]], body: bytes
    ) -> None:
        self._record(status, headers, body)

    def response_file(
        self, status: int, headers: list[tuple[str, str]], file: str
    ) -> None:
        raise NotImplementedError

    def response_file_range(
        self,
        status: int,
        headers: list[tuple[str, str]],
        file: str,
        start: int,
        end: int,
    ) -> None:
        raise NotImplementedError

    def response_stream(
        self, status: int, headers: list[tuple[str, str]]
    ) -> MockHTTPStreamTransport:
        self._record(status, headers, b"")
        return MockHTTPStreamTransport()


def mock_scope(
    path: str = "/",
    method: str = "GET",
    headers: dict[str, str] | None = None,
) -> HTTPScope:
    return MockHTTPScope(path=path, method=method, headers=headers or {})
