"""SVG / PNG export of the current diagram."""
import logging
from typing import Awaitable, Callable

from .errors import ExportError

logger = logging.getLogger(__name__)

SVG_FILENAME = "mermaid-diagram.svg"
PNG_FILENAME = "mermaid-diagram.png"
SVG_MEDIA_TYPE = "image/svg+xml;charset=utf-8"
PNG_MEDIA_TYPE = "image/png"


def export_svg(svg: str | None) -> bytes:
    if not svg:
        raise ExportError("Nothing has been rendered yet")
    if not svg.lstrip().startswith("<?xml"):
        svg = '<?xml version="1.0" encoding="UTF-8"?>\n' + svg
    return svg.encode("utf-8")


async def export_png(source: str, render_png: Callable[[str], Awaitable[bytes]]) -> bytes:
    if not source.strip():
        raise ExportError("Nothing has been rendered yet")
    try:
        return await render_png(source)
    except Exception as e:
        logger.exception("Error exporting PNG")
        raise ExportError(f"PNG export failed: {getattr(e, 'message', None) or e}") from e
