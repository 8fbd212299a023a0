"""Diagram engine backed by a Kroki-compatible HTTP rendering service.

The service takes the diagram source as a text/plain POST body on
/{diagram_type}/{format}:
- 200: the rendered image (SVG or PNG).
- 400: the engine rejected the source; the body is the engine's error text.
- anything else / transport failure: the service is unavailable.

There is no separate validation route, so parse() posts to the SVG endpoint
and keeps the image; a following render() of the same text reuses it instead
of a second round trip.
"""
import logging
from urllib.parse import urljoin

import httpx

from diagram_studio.errors import DiagramSyntaxError, RenderServiceError
from diagram_studio.schema import RenderResult

from .models import error_text

logger = logging.getLogger(__name__)


class KrokiRenderer:
    """Diagram engine: parse(text) -> bool, render(id, text) -> RenderResult."""

    def __init__(
        self,
        base_url: str,
        diagram_type: str = "mermaid",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base = base_url.rstrip("/")
        self._type = diagram_type
        self._timeout = timeout
        self._transport = transport
        self._parsed: tuple[str, str] | None = None

    def _path(self, *parts: str) -> str:
        return urljoin(self._base + "/", "/".join(parts))

    async def _post(self, output_format: str, text: str) -> httpx.Response:
        url = self._path(self._type, output_format)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                r = await client.post(
                    url,
                    content=text.encode("utf-8"),
                    headers={"Content-Type": "text/plain"},
                )
        except httpx.HTTPError as e:
            raise RenderServiceError(f"Rendering service unreachable: {e}") from e
        if r.status_code == 400:
            raise DiagramSyntaxError(error_text(r.text, r.status_code))
        if r.status_code != 200:
            raise RenderServiceError(
                f"Rendering service failed: {error_text(r.text, r.status_code)}",
                status_code=r.status_code,
            )
        return r

    async def parse(self, text: str) -> bool:
        r = await self._post("svg", text)
        self._parsed = (text, r.text)
        return True

    async def render(self, render_id: str, text: str) -> RenderResult:
        parsed, self._parsed = self._parsed, None
        if parsed is not None and parsed[0] == text:
            svg = parsed[1]
        else:
            svg = (await self._post("svg", text)).text
        logger.debug("Rendered %s (%d chars)", render_id, len(svg))
        return RenderResult(svg=svg)

    async def render_png(self, text: str) -> bytes:
        """PNG 내보내기용 렌더링."""
        r = await self._post("png", text)
        return r.content
