from __future__ import annotations

import asyncio
import os
import socket
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import pytest
import pytest_asyncio
import uvicorn

from async_http import CookieStore, HTTPClient

# ---------------------------------------------------------------------------
# Fake curl_cffi transport: records every call and replays queued responses
# ---------------------------------------------------------------------------


class FakeHeaders:
    """Multi-valued headers, like ``curl_cffi.requests.Headers``."""

    def __init__(self, pairs: list[tuple[str, str]] | None = None) -> None:
        self._pairs = list(pairs or [])

    def items(self) -> list[tuple[str, str]]:
        return list(self._pairs)

    def get_list(self, key: str) -> list[str]:
        return [v for k, v in self._pairs if k.lower() == key.lower()]


@dataclass
class FakeResponse:
    status_code: int = 200
    content: bytes = b"{}"
    headers: FakeHeaders = field(default_factory=FakeHeaders)
    url: Optional[str] = None


@dataclass
class FakeCall:
    method: str
    url: str
    headers: dict
    data: Optional[bytes]
    timeout: Any
    discard_cookies: bool = False


class FakeSession:
    def __init__(self) -> None:
        self.calls: list[FakeCall] = []
        self.responses: list[FakeResponse | Exception] = []
        self.closed = False

    def queue(
        self,
        body: bytes = b"{}",
        *,
        status: int = 200,
        headers: list[tuple[str, str]] | None = None,
        url: Optional[str] = None,
    ) -> None:
        self.responses.append(FakeResponse(status, body, FakeHeaders(headers), url))

    def fail_with(self, exc: Exception) -> None:
        self.responses.append(exc)

    async def request(
        self, method, url, *, headers=None, data=None, timeout=None, discard_cookies=False, **kw
    ):
        self.calls.append(FakeCall(method, url, dict(headers or {}), data, timeout, discard_cookies))
        # yield like a real network call, so gathered calls interleave
        await asyncio.sleep(0)
        item = self.responses.pop(0) if self.responses else FakeResponse()
        if isinstance(item, Exception):
            raise item
        if item.url is None:
            item.url = url
        return item

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def store() -> CookieStore:
    s = CookieStore()
    yield s
    s.close()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest_asyncio.fixture
async def client(store: CookieStore, fake_session: FakeSession) -> HTTPClient:
    c = HTTPClient(
        "https://api.test/v1",
        default_headers={"Accept": "application/json"},
        cookie_store=store,
        session=fake_session,
    )
    yield c
    await c.close()


# ---------------------------------------------------------------------------
# Live server: test_server.app served by uvicorn on a background thread,
# unless TEST_API_BASE points at an already running instance
# ---------------------------------------------------------------------------


class _ThreadedServer(uvicorn.Server):
    def install_signal_handlers(self) -> None:  # only the main thread may do this
        pass


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture(scope="session")
def live_base() -> str:
    external = os.getenv("TEST_API_BASE")
    if external:
        yield external
        return

    from test_server.app import app

    port = _free_port()
    server = _ThreadedServer(
        uvicorn.Config(app, host="127.0.0.1", port=port, log_level="warning", lifespan="off")
    )
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    deadline = time.monotonic() + 10
    while not server.started:
        if time.monotonic() > deadline or not thread.is_alive():
            pytest.skip("test server did not start")
        time.sleep(0.05)

    yield f"http://127.0.0.1:{port}/v1"

    server.should_exit = True
    thread.join(timeout=5)
