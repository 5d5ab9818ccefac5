import copy

import pytest
from conftest import MockHTTPProtocol, mock_scope

from remux.forms import FormScope, declared_length, is_form, method_override
from remux.route import Middlewares
from remux.router import Router
from remux.rsgi import HTTPProtocol, HTTPScope, RSGIHTTPHandler


def form_request(
    body: bytes, path: str = "/", method: str = "POST"
) -> tuple[HTTPScope, MockHTTPProtocol]:
    headers = {
        "content-type": "application/x-www-form-urlencoded",
        "content-length": str(len(body)),
    }
    return mock_scope(path, method, headers), MockHTTPProtocol(body)


# --- is_form -----------------------------------------------------------------
@pytest.mark.parametrize(
    "content_type,expected",
    [
        ("application/x-www-form-urlencoded", True),
        ("application/x-www-form-urlencoded; charset=utf-8", True),
        ("Application/X-WWW-Form-Urlencoded", True),
        ("multipart/form-data; boundary=x", False),
        ("application/json", False),
    ],
)
def test_is_form(content_type: str, expected: bool) -> None:
    assert is_form(mock_scope(headers={"content-type": content_type})) is expected


def test_is_form_without_content_type() -> None:
    assert is_form(mock_scope()) is False


# --- declared_length ---------------------------------------------------------
@pytest.mark.parametrize(
    "headers,expected",
    [
        ({"content-length": "12"}, 12),
        ({"content-length": "0"}, 0),
        ({"content-length": "-1"}, None),
        ({"content-length": "twelve"}, None),
        ({}, None),
    ],
)
def test_declared_length(headers: dict[str, str], expected: int | None) -> None:
    assert declared_length(mock_scope(headers=headers)) == expected


# --- FormScope ---------------------------------------------------------------
def test_form_scope_delegates_and_copies() -> None:
    scope = FormScope(mock_scope("/items/1", "POST"), "DELETE", {"a": ["1"]})

    copied = copy.copy(scope)

    assert copied.method == "DELETE"
    assert copied.path == "/items/1"
    assert copied.form == {"a": ["1"]}


def test_form_scope_without_wrapped_scope_raises_attribute_error() -> None:
    bare = FormScope.__new__(FormScope)
    with pytest.raises(AttributeError, match="_scope"):
        _ = bare.path


# --- method_override ---------------------------------------------------------
def test_empty_field_raises() -> None:
    with pytest.raises(ValueError, match="field must not be empty"):
        method_override(field="")


def test_negative_max_body_size_raises() -> None:
    with pytest.raises(ValueError, match="max_body_size must be >= 0, got -1"):
        method_override(max_body_size=-1)


@pytest.mark.asyncio
async def test_overrides_method_and_strips_field() -> None:
    preprocess = method_override()
    scope, proto = form_request(b"_method=delete&name=widget", "/items/1")

    got_scope, wrapped = await preprocess(scope, proto)

    assert isinstance(got_scope, FormScope)
    assert got_scope.method == "DELETE"
    assert got_scope.form == {"name": ["widget"]}
    assert got_scope.path == "/items/1"  # other attributes delegate
    assert await wrapped() == b"_method=delete&name=widget"
    assert proto.reads == 1


@pytest.mark.asyncio
async def test_keeps_field_when_not_stripping() -> None:
    preprocess = method_override(strip_field=False)

    scope, _ = await preprocess(*form_request(b"_method=PUT&name=widget"))

    assert scope.method == "PUT"
    assert scope.form == {"_method": ["PUT"], "name": ["widget"]}  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_custom_field_name() -> None:
    preprocess = method_override(field="verb")
    scope, _ = await preprocess(*form_request(b"verb=patch"))
    assert scope.method == "PATCH"


@pytest.mark.asyncio
async def test_first_value_wins() -> None:
    preprocess = method_override()
    scope, _ = await preprocess(*form_request(b"_method=put&_method=delete"))
    assert scope.method == "PUT"


@pytest.mark.asyncio
async def test_empty_field_value_is_ignored() -> None:
    preprocess = method_override()
    scope, _ = await preprocess(*form_request(b"_method=&name=x"))
    assert scope.method == "POST"
    assert scope.form == {"_method": [""], "name": ["x"]}  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_non_form_request_untouched() -> None:
    preprocess = method_override()
    scope = mock_scope("/", "POST", {"content-type": "application/json"})
    proto = MockHTTPProtocol(b'{"_method": "DELETE"}')

    got_scope, got_proto = await preprocess(scope, proto)

    assert got_scope is scope
    assert got_proto is proto
    assert proto.reads == 0


@pytest.mark.asyncio
async def test_get_request_untouched() -> None:
    preprocess = method_override()
    scope, proto = form_request(b"_method=DELETE", method="GET")

    got_scope, got_proto = await preprocess(scope, proto)

    assert got_scope is scope
    assert got_proto is proto
    assert proto.reads == 0


@pytest.mark.asyncio
async def test_oversized_body_is_not_read() -> None:
    preprocess = method_override(max_body_size=8)
    scope, proto = form_request(b"_method=DELETE")

    got_scope, got_proto = await preprocess(scope, proto)

    assert got_scope is scope
    assert got_proto is proto
    assert got_scope.method == "POST"
    assert proto.reads == 0


@pytest.mark.asyncio
async def test_body_at_limit_is_read() -> None:
    body = b"_method=DELETE"
    preprocess = method_override(max_body_size=len(body))

    scope, _ = await preprocess(*form_request(body))

    assert scope.method == "DELETE"


@pytest.mark.asyncio
async def test_missing_content_length_is_not_read() -> None:
    preprocess = method_override()
    scope = mock_scope(
        "/", "POST", {"content-type": "application/x-www-form-urlencoded"}
    )
    proto = MockHTTPProtocol(b"_method=DELETE")

    got_scope, got_proto = await preprocess(scope, proto)

    assert got_scope is scope
    assert got_proto is proto
    assert proto.reads == 0


@pytest.mark.asyncio
async def test_body_replayed_to_async_iteration() -> None:
    preprocess = method_override()
    _, wrapped = await preprocess(*form_request(b"_method=PUT"))
    assert [chunk async for chunk in wrapped] == [b"_method=PUT"]


@pytest.mark.asyncio
async def test_responses_forwarded() -> None:
    preprocess = method_override()
    scope, proto = form_request(b"_method=PUT")
    _, wrapped = await preprocess(scope, proto)

    wrapped.response_str(201, [("x-test", "1")], "created")

    assert proto.response_status == 201
    assert proto.response_body == b"created"


# --- with router -------------------------------------------------------------
@pytest.mark.asyncio
async def test_router_dispatches_on_overridden_method() -> None:
    called: list[tuple[str, dict[str, list[str]]]] = []

    def delete_item(captures: tuple[str, ...]) -> tuple[None, RSGIHTTPHandler]:
        async def handler(s: HTTPScope, p: HTTPProtocol) -> None:
            called.append((captures[0], s.form))  # type: ignore[attr-defined]
            p.response_empty(204, [])

        return None, handler

    chain = Middlewares[None]()
    router = Router(
        [chain.delete(r"/items/(\d+)", delete_item)],
        preprocessors=[method_override()],
    )
    scope, proto = form_request(b"_method=DELETE&confirm=yes", "/items/9")
    await router.__rsgi__(scope, proto)

    assert called == [("9", {"confirm": ["yes"]})]
    assert proto.response_status == 204


@pytest.mark.asyncio
async def test_router_without_override_reports_405() -> None:
    def delete_item(captures: tuple[str, ...]) -> tuple[None, RSGIHTTPHandler]:
        async def handler(s: HTTPScope, p: HTTPProtocol) -> None:
            p.response_empty(204, [])

        return None, handler

    router = Router([Middlewares[None]().delete(r"/items/(\d+)", delete_item)])
    scope, proto = form_request(b"_method=DELETE", "/items/9")
    await router.__rsgi__(scope, proto)

    assert proto.response_status == 405
    assert proto.header("allow") == "DELETE"
