"""Prompt submission and the lifecycle of AI generation streams.

At most one stream is active. Each submission takes a new session token and
a new buffer claim; a stream whose token is no longer current stops reading
and its buffer writes are refused, so only the newest submission's output
reaches the buffer. Cancellation never needs the transport's cooperation.
"""
import asyncio
import logging
from typing import AsyncIterable, AsyncIterator, Callable

from .agent import DIAGRAM_INSTRUCTION, build_prompt, stream_completion
from .buffer import DiagramBuffer, Writer
from .config import STATUS_TIMEOUT_SECONDS
from .extractor import ExtractionMode, StreamExtractor, StreamSession

logger = logging.getLogger(__name__)

CompletionFn = Callable[[str, str | None], AsyncIterable[str]]

GENERATING_STATUS = "AI is generating..."
FAILURE_STATUS = "Failed to process prompt with AI. Check your API key"


class GenerationController:
    def __init__(
        self,
        buffer: DiagramBuffer,
        completion: CompletionFn = stream_completion,
        system_instruction: str = DIAGRAM_INSTRUCTION,
        enabled: bool = True,
        status_timeout: float = STATUS_TIMEOUT_SECONDS,
    ):
        self._buffer = buffer
        self._completion = completion
        self._system_instruction = system_instruction
        self._extractor = StreamExtractor()
        self._session_token = 0
        self._status_timeout = status_timeout
        self._status_handle: asyncio.TimerHandle | None = None
        self.enabled = enabled
        self.generating = False
        self.status = ""
        self.last_session: StreamSession | None = None

    def is_current(self, token: int) -> bool:
        return token == self._session_token

    def disable(self) -> None:
        """Credentials removed: reject new prompts and ignore any in-flight stream."""
        self.enabled = False
        self._session_token += 1
        self._set_loading(False)

    def enable(self) -> None:
        self.enabled = True

    def _set_loading(self, loading: bool) -> None:
        self.generating = loading
        self._buffer.set_read_only(loading)
        self._clear_status_timer()
        self.status = GENERATING_STATUS if loading else ""

    def _clear_status_timer(self) -> None:
        if self._status_handle is not None:
            self._status_handle.cancel()
            self._status_handle = None

    def _show_failure(self) -> None:
        self.status = FAILURE_STATUS
        self._status_handle = asyncio.get_running_loop().call_later(self._status_timeout, self._expire_status)

    def _expire_status(self) -> None:
        self._status_handle = None
        if self.status == FAILURE_STATUS:
            self.status = ""

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        """Submit ``prompt`` and yield every diagram text written to the buffer."""
        prompt = prompt.strip()
        if not prompt:
            return
        if not self.enabled:
            logger.info("Ignoring prompt: AI generation is disabled")
            return

        self._session_token += 1
        token = self._session_token
        session = StreamSession(token=token)
        self.last_session = session
        buffer_token = self._buffer.claim(Writer.STREAM)
        full_prompt = build_prompt(prompt, self._buffer.text)
        self._set_loading(True)
        logger.info("Generation %d started (%d prompt chars)", token, len(full_prompt))

        failed = False
        try:
            deltas = self._completion(full_prompt, self._system_instruction)
            async for text in self._extractor.iter_updates(session, deltas, lambda: self.is_current(token)):
                if not self.is_current(token):
                    break
                if self._buffer.write(text, Writer.STREAM, buffer_token):
                    yield text
        except Exception:
            logger.exception("Generation %d failed", token)
            failed = True
        finally:
            if self.is_current(token):
                self._set_loading(False)
                if failed:
                    self._show_failure()
        logger.info(
            "Generation %d ended: mode=%s, captured %d chars",
            token,
            session.mode.value,
            len(session.captured_text),
        )

    async def submit(self, prompt: str) -> StreamSession | None:
        """Run a whole generation; returns its session, or None if nothing was submitted."""
        before = self.last_session
        async for _ in self.stream(prompt):
            pass
        session = self.last_session
        return session if session is not before else None

    @staticmethod
    def completed(session: StreamSession | None) -> bool:
        return session is not None and session.mode is ExtractionMode.DONE
