"""
Frontend page rendering.

The page advertises the board with `<link rel="board">`, sets the CSS custom
properties the chat app reads, and loads the frontend module. The board URL
and module URL are HTML-escaped; style values are validated by
`FrontendStyle` instead, since `<style>` content is not entity-decoded.
"""

from functools import lru_cache
from pathlib import Path

from aiohttp import web
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from src.proxy.options import FrontendOptions
from src.utils.logging import get_logger

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
FRONTEND_TEMPLATE = "frontend.html.j2"


@lru_cache(maxsize=1)
def _get_environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=True,
        undefined=StrictUndefined,
        # Page markup is emitted exactly as written in the template
        trim_blocks=False,
        lstrip_blocks=False,
    )


def render_frontend(board: str, options: FrontendOptions | None = None) -> str:
    """
    Render the frontend page for a board.

    Args:
        board: Board URL, linked from the page.
        options: Frontend options. Defaults apply when None.

    Returns:
        HTML document.
    """
    options = options or FrontendOptions()
    template = _get_environment().get_template(FRONTEND_TEMPLATE)
    return template.render(
        board=board,
        css=options.style.css_variables(),
        module=options.frontend_module,
    )


def render_frontend_response(
    board: str,
    options: FrontendOptions | None = None,
) -> web.Response:
    """
    Build the GET response.

    A disabled frontend answers 405 with an empty body.
    """
    if options is not None and not options.frontend_enabled:
        logger.debug("Frontend disabled", board=board)
        return web.Response(status=405)

    return web.Response(
        body=render_frontend(board, options).encode("utf-8"),
        headers={"Content-Type": "text/html"},
    )
