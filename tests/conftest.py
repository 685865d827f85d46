"""
Pytest fixtures and configuration for bbrun-proxy tests.

=============================================================================
Test Classification
=============================================================================

Primary Markers:
- @pytest.mark.unit: Single function/class, no network
  - DEFAULT: Tests without marker are auto-classified as unit
- @pytest.mark.integration: aiohttp application served in-process, board API
  replaced with an httpx.MockTransport

Command:
    pytest                      # everything
    pytest -m unit              # unit only
    pytest -m integration       # in-process server tests

=============================================================================
Mock Strategy
=============================================================================

- Board API: httpx.MockTransport passed to proxy(transport=...)
- Inbound requests: aiohttp.test_utils.TestServer / TestClient
- Configuration files: tmp_path
- Network: Prohibited
"""

import os
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

# Set test environment before importing anything else
os.environ["BBRUN_CONFIG_DIR"] = str(Path(__file__).parent.parent / "config")
os.environ["BBRUN_GENERAL__LOG_LEVEL"] = "DEBUG"

Headers = dict[str, str] | list[tuple[str, str]]


# =============================================================================
# Pytest Hooks for Test Classification
# =============================================================================


def pytest_configure(config):
    """Register custom markers for test classification."""
    config.addinivalue_line(
        "markers", "unit: Unit tests with no external dependencies (fast, <1s/test)"
    )
    config.addinivalue_line(
        "markers", "integration: In-process server tests with a mocked board API (<5s/test)"
    )


def pytest_collection_modifyitems(config, items):
    """Tests without explicit markers are assumed to be unit tests."""
    for item in items:
        has_classification = any(
            marker.name in ("unit", "integration") for marker in item.iter_markers()
        )
        if not has_classification:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Global State
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Clear the cached settings so env overrides set by a test take effect."""
    from src.utils.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def no_board_key(monkeypatch: pytest.MonkeyPatch) -> None:
    """Never leak a real BB_LIVE_KEY from the host into tests."""
    monkeypatch.delenv("BB_LIVE_KEY", raising=False)


# =============================================================================
# Board API Mock
# =============================================================================


class ChunkedBody(httpx.AsyncByteStream):
    """Response body delivered one chunk at a time, as a live connection would."""

    def __init__(self, chunks: list[bytes]) -> None:
        self.chunks = chunks

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            yield chunk


class BoardAPIStub:
    """Records requests sent to the board API and answers with a canned response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status = 200
        self.headers: Headers = {"Content-Type": "text/event-stream"}
        self.chunks: list[bytes] = [b'data: ["output",{"text":"hi"}]\n\n']
        self.reason: str | None = None
        self.error: Exception | None = None

    def respond(
        self,
        status: int = 200,
        headers: Headers | None = None,
        content: bytes | list[bytes] = b"",
        reason: str | None = None,
    ) -> None:
        self.status = status
        self.headers = headers or {}
        self.chunks = [content] if isinstance(content, bytes) else content
        self.reason = reason

    def fail(self, error: Exception) -> None:
        self.error = error

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        extensions = {}
        if self.reason is not None:
            extensions["reason_phrase"] = self.reason.encode("ascii")
        return httpx.Response(
            self.status,
            headers=self.headers,
            stream=ChunkedBody(self.chunks),
            extensions=extensions,
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "board API was not called"
        return self.requests[-1]


@pytest.fixture
def board_api() -> BoardAPIStub:
    """Board API stub; pass `board_api.transport` to proxy()."""
    return BoardAPIStub()


# =============================================================================
# In-process Server
# =============================================================================


@pytest_asyncio.fixture
async def make_client() -> AsyncGenerator[
    Callable[[Callable[[web.Request], Awaitable[web.StreamResponse]]], Awaitable[TestClient]],
    None,
]:
    """Serve a handler on every path and return a connected test client."""
    clients: list[TestClient] = []

    async def _make(handler: Any) -> TestClient:
        app = web.Application()
        app.router.add_route("*", "/{path:.*}", handler)
        client = TestClient(TestServer(app))
        await client.start_server()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.close()


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a YAML file into a temporary config directory."""

    def _write(filename: str, content: str) -> Path:
        (tmp_path / filename).write_text(content, encoding="utf-8")
        return tmp_path

    return _write
