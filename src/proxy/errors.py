"""
Error payloads for the board proxy.

Board clients read the POST response as a server-sent-event stream, so errors
are delivered as a single event line instead of an HTTP error page:

    data: ["error","BB_LIVE_KEY is not set"]

The content type stays `application/json` and a missing key keeps status 200;
existing frontends depend on both.
"""

import json

from aiohttp import web


class ProxyError(Exception):
    """Base exception for errors reported to the board client."""

    status = 200

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingKeyError(ProxyError):
    """Raised when the board secret is not configured."""

    def __init__(self, key_env: str = "BB_LIVE_KEY"):
        super().__init__(f"{key_env} is not set")


class InvalidBodyError(ProxyError):
    """Raised when the POST body is not a JSON object."""

    status = 400


class UpstreamError(ProxyError):
    """Raised when the board API could not be reached."""

    status = 502


class UpstreamTimeoutError(UpstreamError):
    """Raised when the board API did not answer within the configured timeout."""

    status = 504


def format_error_event(message: str) -> str:
    """Format an error as a server-sent event line."""
    payload = json.dumps(["error", message], separators=(",", ":"), ensure_ascii=False)
    return f"data: {payload}\n\n"


def error_response(error: ProxyError) -> web.Response:
    return web.Response(
        status=error.status,
        body=format_error_event(error.message).encode("utf-8"),
        headers={"Content-Type": "application/json"},
    )
