"""
Board proxy handler.

GET serves the frontend page for the board. POST forwards the JSON body to the
board's run endpoint with the server-side key injected as `$key` and relays
the response stream back untouched: status, reason, headers and raw body.
The hop-by-hop framing headers are left to aiohttp, which also supplies
`Content-Type: application/octet-stream` when the board API sends none.

Routes:
  GET  * -> frontend page (405 when the frontend is disabled)
  POST * -> <board without .json>.api/run
  *    * -> 405
"""

import json
import os
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from aiohttp import web

from src.proxy.board import board_to_endpoint
from src.proxy.errors import (
    InvalidBodyError,
    MissingKeyError,
    ProxyError,
    UpstreamError,
    UpstreamTimeoutError,
    error_response,
)
from src.proxy.frontend import render_frontend_response
from src.proxy.options import FrontendOptions
from src.utils.logging import LogContext, get_logger

logger = get_logger(__name__)

KeyProvider = Callable[[], str | None]
Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

DEFAULT_KEY_ENV = "BB_LIVE_KEY"
ALLOWED_METHODS = ("GET", "POST")

# Framing is owned by the serving runtime, not the board API
HOP_BY_HOP_HEADERS = frozenset({"connection", "keep-alive", "transfer-encoding"})


def env_key_provider(name: str = DEFAULT_KEY_ENV) -> KeyProvider:
    """Key provider reading an environment variable on every call."""

    def read_key() -> str | None:
        return os.environ.get(name)

    return read_key


def _describe_error(e: BaseException) -> str:
    return str(e) or f"{type(e).__name__}: (no message)"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


async def _read_board_body(request: web.Request) -> dict[str, Any]:
    raw = await request.read()
    try:
        body = json.loads(raw, parse_constant=_reject_constant)
    except ValueError as e:
        raise InvalidBodyError("Invalid JSON body") from e
    if not isinstance(body, dict):
        raise InvalidBodyError("Request body must be a JSON object")
    return body


async def _relay(request: web.Request, upstream: httpx.Response) -> web.StreamResponse:
    """Stream an upstream response back to the client chunk by chunk."""
    response = web.StreamResponse(
        status=upstream.status_code,
        reason=upstream.reason_phrase or None,
    )
    for raw_name, raw_value in upstream.headers.raw:
        name = raw_name.decode("latin-1")
        if name.lower() in HOP_BY_HOP_HEADERS:
            continue
        response.headers.add(name, raw_value.decode("latin-1"))

    await response.prepare(request)
    if upstream.is_stream_consumed:
        # Transport already read the body into memory
        await response.write(upstream.content)
    else:
        async for chunk in upstream.aiter_raw():
            await response.write(chunk)
    await response.write_eof()
    return response


async def run_board(
    request: web.Request,
    endpoint_url: str,
    *,
    key_provider: KeyProvider,
    key_env: str = DEFAULT_KEY_ENV,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> web.StreamResponse:
    """
    Forward a board run to the board API.

    Args:
        request: Incoming aiohttp request with a JSON object body.
        endpoint_url: Board run endpoint.
        key_provider: Returns the board key, or None when unset.
        key_env: Name reported when the key is missing.
        timeout: Upstream timeout in seconds. None waits indefinitely.
        transport: Optional httpx transport for the upstream client.

    Returns:
        Streamed upstream response.

    Raises:
        MissingKeyError: No key is configured.
        InvalidBodyError: Body is not a JSON object.
        UpstreamError: Board API could not be reached.
    """
    key = key_provider()
    if not key:
        raise MissingKeyError(key_env)

    body = await _read_board_body(request)
    body["$key"] = key
    content = json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    logger.info("Forwarding board run", endpoint=endpoint_url)

    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        upstream_request = client.build_request(
            "POST",
            endpoint_url,
            content=content,
            headers={"Content-Type": "application/json"},
        )
        try:
            upstream = await client.send(upstream_request, stream=True)
        except httpx.TimeoutException as e:
            logger.error("Board API timeout", endpoint=endpoint_url, error=_describe_error(e))
            raise UpstreamTimeoutError(
                f"Upstream request timed out: {_describe_error(e)}"
            ) from e
        except httpx.RequestError as e:
            logger.error("Board API connection error", endpoint=endpoint_url, error=_describe_error(e))
            raise UpstreamError(f"Upstream request failed: {_describe_error(e)}") from e

        try:
            logger.info(
                "Relaying board response",
                endpoint=endpoint_url,
                status=upstream.status_code,
            )
            return await _relay(request, upstream)
        finally:
            await upstream.aclose()


def proxy(
    url: str,
    options: FrontendOptions | None = None,
    *,
    key_provider: KeyProvider | None = None,
    key_env: str = DEFAULT_KEY_ENV,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Handler:
    """
    Create a request handler fronting a board.

    Args:
        url: Board URL (usually ending in `.json`).
        options: Frontend options for GET.
        key_provider: Source of the board key. Reads `key_env` from the
            environment on every POST when None.
        key_env: Environment variable holding the key.
        timeout: Upstream timeout in seconds. None waits indefinitely.
        transport: Optional httpx transport for the upstream client.

    Returns:
        aiohttp handler.
    """
    if key_provider is None:
        key_provider = env_key_provider(key_env)

    async def handle(request: web.Request) -> web.StreamResponse:
        with LogContext(method=request.method, path=request.path):
            if request.method == "GET":
                return render_frontend_response(url, options)

            if request.method == "POST":
                try:
                    return await run_board(
                        request,
                        board_to_endpoint(url),
                        key_provider=key_provider,
                        key_env=key_env,
                        timeout=timeout,
                        transport=transport,
                    )
                except ProxyError as e:
                    logger.warning("Board run failed", error=e.message, status=e.status)
                    return error_response(e)

            return web.Response(status=405, headers={"Allow": ", ".join(ALLOWED_METHODS)})

    return handle
