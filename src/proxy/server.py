"""
bbrun Proxy Server.

Serves one board on every path:
  GET  /* -> frontend page
  POST /* -> board run endpoint, key injected, response streamed back

Configuration comes from config/settings.yaml and BBRUN_* environment
variables; the board key is read from BB_LIVE_KEY on every run.

Usage:
  BBRUN_BOARD__URL=https://example.com/boards/chat.json python -m src.proxy.server
"""

import asyncio
import functools
import signal

from aiohttp import web

from src.proxy.handler import env_key_provider, proxy
from src.utils.config import Settings, get_settings
from src.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> web.Application:
    """Create aiohttp application."""
    if settings is None:
        settings = get_settings()

    if not settings.board.url:
        raise ValueError("board.url is not configured (set BBRUN_BOARD__URL)")

    handler = proxy(
        settings.board.url,
        settings.board.options,
        key_provider=env_key_provider(settings.upstream.key_env),
        key_env=settings.upstream.key_env,
        timeout=settings.upstream.timeout,
    )

    app = web.Application()
    app.router.add_route("*", "/{path:.*}", handler)
    return app


async def main() -> None:
    """Run proxy server."""
    configure_logging()
    settings = get_settings()

    logger.info(
        "Starting bbrun proxy server",
        host=settings.server.host,
        port=settings.server.port,
        board=settings.board.url,
        frontend_enabled=settings.board.options.frontend_enabled,
    )

    app = create_app(settings)
    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, settings.server.host, settings.server.port)
    await site.start()

    logger.info(f"Proxy server running on http://{settings.server.host}:{settings.server.port}")

    # Wait for shutdown signal
    stop_event = asyncio.Event()

    def handle_signal(sig: int) -> None:
        logger.info("Received shutdown signal", signal=sig)
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, functools.partial(handle_signal, sig))

    await stop_event.wait()

    logger.info("Shutting down proxy server")
    await runner.cleanup()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
