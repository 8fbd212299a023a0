"""
Shared test fixtures: fake diagram engine, scripted completion streams, studio wiring.

No network: the engine and the AI completion are replaced by in-process fakes.
"""
import asyncio

import pytest

from diagram_studio.codec import LayoutStore
from diagram_studio.errors import DiagramSyntaxError
from diagram_studio.schema import RenderResult
from diagram_studio.studio import DiagramStudio

SVG_TEMPLATE = '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {w} {h}"><!-- {src} --></svg>'


class FakeEngine:
    """Accepts any source without the word INVALID; renders a 200x100 SVG."""

    def __init__(self, width=200, height=100):
        self.width = width
        self.height = height
        self.parse_calls: list[str] = []
        self.render_calls: list[str] = []
        self.delays: dict[str, float] = {}
        self.error_message = "Parse error on line 2:\n...A-->B[\n-------^\nExpecting 'SQE', got 'EOF'"
        self.png_error: Exception | None = None

    async def parse(self, text: str) -> bool:
        self.parse_calls.append(text)
        await asyncio.sleep(self.delays.get(text, 0))
        if "INVALID" in text:
            raise DiagramSyntaxError(self.error_message)
        return "FALSE" not in text

    async def render(self, render_id: str, text: str) -> RenderResult:
        self.render_calls.append(text)
        return RenderResult(svg=SVG_TEMPLATE.format(w=self.width, h=self.height, src=text))

    async def render_png(self, text: str) -> bytes:
        if self.png_error is not None:
            raise self.png_error
        return b"\x89PNG\r\n\x1a\n" + text.encode("utf-8")


def scripted_completion(fragments, delay=0.0, fail_after=None):
    """Completion callable that replays ``fragments``; records the prompts it got."""
    prompts = []

    async def completion(prompt, system_instruction=None):
        prompts.append(prompt)
        for index, fragment in enumerate(fragments):
            if fail_after is not None and index == fail_after:
                raise ConnectionError("stream dropped")
            await asyncio.sleep(delay)
            yield fragment

    completion.prompts = prompts
    return completion


FENCED_RESPONSE = [
    "Sure! Here is the diagram:\n\n``",
    "`merm",
    "aid\ngraph TD\n",
    "    A[Start] --> B[End]\n",
    "``",
    "`\nLet me know if you want changes.",
    "\n```mermaid\ngraph LR\nX-->Y\n```",
]


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def layout_store(tmp_path):
    return LayoutStore(tmp_path / "layout.json")


@pytest.fixture
def make_studio(engine, layout_store):
    def _make(completion=None, **kwargs):
        kwargs.setdefault("debounce_seconds", 0.01)
        kwargs.setdefault("ai_enabled", True)
        return DiagramStudio(
            engine,
            completion=completion or scripted_completion(FENCED_RESPONSE),
            layout_store=layout_store,
            **kwargs,
        )

    return _make
