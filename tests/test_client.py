from __future__ import annotations

import asyncio
import json
import logging
import time

import pytest
from curl_cffi import CurlError
from pydantic import BaseModel

from async_http import (
    ClientConfig,
    Cookie,
    CookieStore,
    DecodeError,
    EncodingError,
    Header,
    HTTPClient,
    HttpMethod,
    MalformedURLError,
    Response,
    StatusClass,
    StorageError,
    TransportError,
)

from .conftest import FakeSession


class Items(BaseModel):
    items: list[int]


# ===========================================================================
# End-to-end scenarios
# ===========================================================================
@pytest.mark.asyncio
async def test_get_builds_url_and_sends_only_default_headers(client: HTTPClient, fake_session: FakeSession):
    fake_session.queue(b'{"items": [1, 2]}')

    data = await client.get("/items", [("limit", "5")], into=Items)

    assert data == Items(items=[1, 2])
    (call,) = fake_session.calls
    assert call.method == "GET"
    assert call.url == "https://api.test/v1/items?limit=5"
    assert call.headers == {"Accept": "application/json"}
    assert call.data is None
    assert call.timeout == 60.0


@pytest.mark.asyncio
async def test_set_cookie_is_captured_and_replayed(
    client: HTTPClient, fake_session: FakeSession, store: CookieStore
):
    fake_session.queue(
        b"{}",
        headers=[("Set-Cookie", "session=abc123; Domain=api.test; Path=/")],
    )
    await client.get("/items", {"limit": 5})

    (cookie,) = store.get_cookies("api.test")
    assert (cookie.name, cookie.value, cookie.path) == ("session", "abc123", "/")

    await client.get("/items")
    assert fake_session.calls[1].headers["Cookie"] == "session=abc123"


@pytest.mark.asyncio
async def test_form_post_body_and_unmodified_url(client: HTTPClient, fake_session: FakeSession):
    await client.request(
        HttpMethod.POST,
        "/login",
        [("q", "x")],
        headers=[Header.content_type("application/x-www-form-urlencoded")],
    )
    (call,) = fake_session.calls
    assert call.data == b"q=x"
    assert call.url == "https://api.test/v1/login"


@pytest.mark.asyncio
async def test_form_shortcut(client: HTTPClient, fake_session: FakeSession):
    await client.form("/login", {"user": "me", "pass": "s3cret"})
    (call,) = fake_session.calls
    assert call.method == "POST"
    assert call.data == b"user=me&pass=s3cret"
    assert call.headers["Content-Type"] == "application/x-www-form-urlencoded"


@pytest.mark.asyncio
async def test_json_post(client: HTTPClient, fake_session: FakeSession):
    fake_session.queue(b'{"ok": true}')
    result = await client.post("/items", {"name": "a"})
    assert result == {"ok": True}
    (call,) = fake_session.calls
    assert json.loads(call.data) == {"name": "a"}
    assert call.headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "verb, method",
    [("put", "PUT"), ("patch", "PATCH"), ("delete", "DELETE"), ("update", "UPDATE")],
)
async def test_verb_shortcuts(client: HTTPClient, fake_session: FakeSession, verb: str, method: str):
    await getattr(client, verb)("/items/1", {"qty": 1})
    (call,) = fake_session.calls
    assert call.method == method
    assert json.loads(call.data) == {"qty": 1}


# ===========================================================================
# Cookies
# ===========================================================================
@pytest.mark.asyncio
async def test_cookies_are_captured_regardless_of_status(
    client: HTTPClient, fake_session: FakeSession, store: CookieStore
):
    fake_session.queue(b'{"error": "boom"}', status=500, headers=[("set-cookie", "trace=1")])
    resp = await client.fetch("GET", "/items")
    assert resp.is_server_error and resp.is_internal_server_error
    assert [c.name for c in store.get_cookies("api.test")] == ["trace"]
    assert [c.name for c in resp.cookies] == ["trace"]


@pytest.mark.asyncio
async def test_cookies_bound_to_effective_domain(fake_session: FakeSession, store: CookieStore):
    client = HTTPClient("https://api.test", cookie_store=store, session=fake_session)
    fake_session.queue(b"{}", headers=[("Set-Cookie", "sid=1")], url="https://Login.Test/done")
    resp = await client.fetch("GET", "/redirect")
    assert resp.url.domain == "login.test"
    assert store.get_cookies("api.test") == []
    assert [c.value for c in store.get_cookies("login.test")] == ["1"]


@pytest.mark.asyncio
async def test_store_is_shared_between_clients(store: CookieStore):
    first_session, second_session = FakeSession(), FakeSession()
    first = HTTPClient("https://api.test/v1", cookie_store=store, session=first_session)
    second = HTTPClient("https://api.test/v2", cookie_store=store, session=second_session)

    first_session.queue(b"{}", headers=[("Set-Cookie", "sid=shared")])
    await first.get("/a")
    await second.get("/b")

    assert second_session.calls[0].headers["Cookie"] == "sid=shared"


@pytest.mark.asyncio
async def test_domain_isolation_on_replay(fake_session: FakeSession, store: CookieStore):
    store.save_cookies([Cookie("other", "1")], "b.test")
    client = HTTPClient("https://a.test", cookie_store=store, session=fake_session)
    await client.get("/")
    assert "Cookie" not in fake_session.calls[0].headers


@pytest.mark.asyncio
async def test_expired_cookies_are_not_sent_and_get_swept(
    client: HTTPClient, fake_session: FakeSession, store: CookieStore
):
    now = time.time()
    store.save_cookies(
        [Cookie("old", "1", expires=now - 10), Cookie("live", "2", expires=now + 3600)],
        "api.test",
    )
    await client.get("/items")
    assert fake_session.calls[0].headers["Cookie"] == "live=2"
    assert [c.name for c in store.get_cookies("api.test")] == ["live"]


@pytest.mark.asyncio
async def test_per_call_cookie_header_wins(client: HTTPClient, fake_session: FakeSession, store: CookieStore):
    store.save_cookies([Cookie("sid", "stored")], "api.test")
    await client.get("/items", headers={"cookie": "sid=manual"})
    headers = {k.lower(): v for k, v in fake_session.calls[0].headers.items()}
    assert headers["cookie"] == "sid=manual"


class _ReadOnlyStore(CookieStore):
    """Reads work, every save fails like a full disk."""

    def save_cookies(self, cookies, domain):
        raise StorageError("disk full")


@pytest.mark.asyncio
async def test_storage_failure_during_capture_does_not_fail_the_call(fake_session: FakeSession):
    seen: list[StorageError] = []
    client = HTTPClient(
        "https://api.test",
        cookie_store=_ReadOnlyStore(),
        session=fake_session,
        on_cookie_error=seen.append,
    )
    fake_session.queue(b'{"ok": true}', headers=[("Set-Cookie", "sid=1")])

    assert await client.get("/items") == {"ok": True}
    assert len(seen) == 1 and str(seen[0]) == "disk full"


@pytest.mark.asyncio
async def test_default_cookie_error_handler_logs_warning(
    fake_session: FakeSession, caplog: pytest.LogCaptureFixture
):
    client = HTTPClient("https://api.test", cookie_store=_ReadOnlyStore(), session=fake_session)
    fake_session.queue(b"{}", headers=[("Set-Cookie", "sid=1")])
    with caplog.at_level(logging.WARNING, logger="async_http.client"):
        await client.get("/items")
    assert "cookie capture failed: disk full" in caplog.text


# ===========================================================================
# Errors
# ===========================================================================
@pytest.mark.asyncio
async def test_empty_host_fails_before_io(fake_session: FakeSession, store: CookieStore):
    client = HTTPClient("not-a-url", cookie_store=store, session=fake_session)
    with pytest.raises(MalformedURLError):
        await client.get("/items")
    assert fake_session.calls == []


@pytest.mark.asyncio
async def test_encoding_error_before_io(client: HTTPClient, fake_session: FakeSession):
    with pytest.raises(EncodingError):
        await client.post("/items", {"bad": object()})
    assert fake_session.calls == []


@pytest.mark.asyncio
async def test_storage_error_while_building_is_terminal(fake_session: FakeSession):
    store = CookieStore()
    client = HTTPClient("https://api.test", cookie_store=store, session=fake_session)
    store.close()
    with pytest.raises(StorageError):
        await client.get("/items")
    assert fake_session.calls == []


@pytest.mark.asyncio
async def test_transport_error(client: HTTPClient, fake_session: FakeSession):
    fake_session.fail_with(CurlError("connection reset"))
    with pytest.raises(TransportError) as exc_info:
        await client.get("/items")
    assert exc_info.value.request.url.full_url == "https://api.test/v1/items"
    assert isinstance(exc_info.value.__cause__, CurlError)
    assert len(fake_session.calls) == 1  # no retry


@pytest.mark.asyncio
async def test_decode_error_on_success_status(client: HTTPClient, fake_session: FakeSession, store: CookieStore):
    fake_session.queue(b"<html>", headers=[("Set-Cookie", "sid=1")])
    with pytest.raises(DecodeError) as exc_info:
        await client.get("/items", into=Items)
    assert exc_info.value.response.status_code == 200
    assert exc_info.value.request is not None
    # the cookie was captured before decoding failed
    assert [c.name for c in store.get_cookies("api.test")] == ["sid"]


@pytest.mark.asyncio
async def test_non_2xx_is_still_decoded(client: HTTPClient, fake_session: FakeSession):
    fake_session.queue(b'{"items": []}', status=404)
    result = await client.send("GET", "/items", into=Items)
    assert result.data == Items(items=[])
    assert result.status_code == 404
    assert result.status_class is StatusClass.CLIENT_ERROR


# ===========================================================================
# Misc
# ===========================================================================
@pytest.mark.asyncio
async def test_fetch_returns_raw_response(client: HTTPClient, fake_session: FakeSession):
    fake_session.queue(
        "привет".encode("cp1251"),
        headers=[("Content-Type", "text/plain; charset=cp1251")],
    )
    resp = await client.fetch("GET", "/raw")
    assert isinstance(resp, Response)
    assert resp.text == "привет"
    assert resp.is_success
    assert resp.request.method is HttpMethod.GET

    with pytest.raises(DecodeError):
        resp.json()


@pytest.mark.asyncio
async def test_response_json(client: HTTPClient, fake_session: FakeSession):
    fake_session.queue(b'{"items": [1, 2], "next": null}')
    resp = await client.fetch("GET", "/items")
    assert resp.json() == {"items": [1, 2], "next": None}


@pytest.mark.asyncio
async def test_decode_into_str_and_bytes(client: HTTPClient, fake_session: FakeSession):
    fake_session.queue(b"hello")
    fake_session.queue(b"\x00\x01")
    assert await client.get("/a", into=str) == "hello"
    assert await client.get("/b", into=bytes) == b"\x00\x01"


@pytest.mark.asyncio
async def test_set_base_url(client: HTTPClient, fake_session: FakeSession):
    client.set_base_url("http://other.test:8080/api")
    await client.get("/x")
    assert fake_session.calls[0].url == "http://other.test:8080/api/x"
    assert fake_session.calls[0].headers == {"Accept": "application/json"}


@pytest.mark.asyncio
async def test_explicit_config(fake_session: FakeSession, store: CookieStore):
    config = ClientConfig(
        scheme="http",
        host="localhost",
        port=8000,
        path="/api",
        default_headers=(Header.user_agent("tests/1.0"),),
        timeout=5.0,
    )
    client = HTTPClient(config, cookie_store=store, session=fake_session)
    await client.get("/ping")
    (call,) = fake_session.calls
    assert call.url == "http://localhost:8000/api/ping"
    assert call.headers == {"User-Agent": "tests/1.0"}
    assert call.timeout == 5.0


@pytest.mark.asyncio
async def test_injected_session_is_not_closed(fake_session: FakeSession, store: CookieStore):
    async with HTTPClient("https://api.test", cookie_store=store, session=fake_session):
        pass
    assert fake_session.closed is False


@pytest.mark.asyncio
async def test_state_transitions_are_logged(
    client: HTTPClient, fake_session: FakeSession, caplog: pytest.LogCaptureFixture
):
    with caplog.at_level(logging.DEBUG, logger="async_http.client"):
        await client.get("/items")
    states = [r.getMessage().split("→ ")[1].split(" ")[0] for r in caplog.records if "→" in r.getMessage()]
    assert states == ["IDLE", "BUILDING", "AWAITING_RESPONSE", "DECODING", "COMPLETE"]


@pytest.mark.asyncio
async def test_concurrent_calls_keep_one_cookie_per_key(
    client: HTTPClient, fake_session: FakeSession, store: CookieStore
):
    for i in range(20):
        fake_session.queue(b"{}", headers=[("Set-Cookie", f"sid={i}")])

    await asyncio.gather(*(client.get(f"/items/{i}") for i in range(20)))
    # every call was built before any response was captured
    assert all("Cookie" not in call.headers for call in fake_session.calls)

    cookies = store.get_cookies("api.test")
    assert len(cookies) == 1
    assert cookies[0].name == "sid"


@pytest.mark.asyncio
async def test_build_without_dispatch(client: HTTPClient, fake_session: FakeSession, store: CookieStore):
    store.save_cookies([Cookie("sid", "1")], "api.test")
    req = client.build("POST", "/items", [("dry", "1")], {"a": 1}, {"X-Trace": "t"})
    assert req.method is HttpMethod.POST
    assert req.url.full_url == "https://api.test/v1/items?dry=1"
    assert req.header_map() == {
        "Accept": "application/json",
        "Cookie": "sid=1",
        "X-Trace": "t",
        "Content-Type": "application/json",
    }
    assert json.loads(req.body) == {"a": 1}
    assert fake_session.calls == []


@pytest.mark.asyncio
async def test_transport_jar_is_never_fed(client: HTTPClient, fake_session: FakeSession, store: CookieStore):
    fake_session.queue(b"{}", headers=[("Set-Cookie", "sid=1")])
    await client.get("/items")
    store.delete_cookies("api.test")
    await client.get("/whoami")

    assert all(call.discard_cookies for call in fake_session.calls)
    assert "Cookie" not in fake_session.calls[1].headers
