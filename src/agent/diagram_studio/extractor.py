"""Incremental extraction of a fenced diagram block from an LLM token stream.

The model answers with prose around one fenced block::

    Here is the diagram:
    ```mermaid
    graph TD
      A --> B
    ```
    Let me know if ...

Fragments can split the fences anywhere, so every fragment is appended to
the raw accumulator and the fences are looked up in the accumulated text,
never in the fragment alone. While the block is open the captured text is
republished on every fragment, minus any trailing backticks that may be the
start of the closing fence.
"""
import enum
import logging
import re
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Callable

logger = logging.getLogger(__name__)

FENCE = "```"


class ExtractionMode(str, enum.Enum):
    SEARCHING = "searching"
    CAPTURING = "capturing"
    DONE = "done"


@dataclass
class StreamSession:
    """One in-flight AI generation."""

    token: int = 0
    raw_accumulator: str = ""
    mode: ExtractionMode = ExtractionMode.SEARCHING
    captured_text: str = ""
    body_start: int = -1


def _hold_back_partial_fence(body: str) -> str:
    # Up to two trailing backticks may be the first half of the closing fence.
    for size in (2, 1):
        if body.endswith(FENCE[:size]):
            return body[:-size]
    return body


class StreamExtractor:
    """Fence-tracking state machine: SEARCHING -> CAPTURING -> DONE.

    Only the first fenced block of a stream is used. Once it is closed the
    session is DONE and later fragments (trailing prose, further blocks) are
    not processed.
    """

    def __init__(self, language: str = "mermaid"):
        self.language = language
        self._open_re = re.compile(FENCE + re.escape(language) + r"[ \t]*\r?\n")

    def feed(self, session: StreamSession, fragment: str) -> str | None:
        """Process one fragment. Returns the text to publish, or None when
        nothing observable changed."""
        if session.mode is ExtractionMode.DONE:
            return None
        session.raw_accumulator += fragment

        if session.mode is ExtractionMode.SEARCHING:
            opening = self._open_re.search(session.raw_accumulator)
            if opening is None:
                return None
            session.body_start = opening.end()
            session.mode = ExtractionMode.CAPTURING

        body = session.raw_accumulator[session.body_start:]
        close = body.find(FENCE)
        if close != -1:
            session.captured_text = body[:close].strip()
            session.mode = ExtractionMode.DONE
            return session.captured_text

        visible = _hold_back_partial_fence(body)
        if visible == session.captured_text:
            return None
        session.captured_text = visible
        return visible

    async def iter_updates(
        self,
        session: StreamSession,
        deltas: AsyncIterable[str],
        is_current: Callable[[], bool] = lambda: True,
    ) -> AsyncIterator[str]:
        """Consume ``deltas`` in arrival order and yield each published text.

        Stops when the block is closed or when ``is_current`` turns False (a
        newer session took over); the underlying stream is then closed if it
        supports it, otherwise its remaining output is just never read.
        """
        iterator = deltas.__aiter__()
        try:
            async for fragment in iterator:
                if not is_current():
                    logger.info("Stream session %d superseded; ignoring remaining fragments", session.token)
                    break
                update = self.feed(session, fragment)
                if update is not None:
                    yield update
                if session.mode is ExtractionMode.DONE:
                    break
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()
