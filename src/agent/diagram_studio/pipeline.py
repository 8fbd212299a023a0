"""Debounced validate+render pipeline.

Every buffer change schedules a render after a quiet period; only the last
call in a burst runs. Each run takes a request token, and a result (success
or failure) whose token is no longer the newest is thrown away, so a slow
render of an older buffer can never overwrite a newer one.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Protocol

from renderclient.models import svg_size

from .buffer import DiagramBuffer
from .diagnostics import build_diagnostic
from .errors import DiagramSyntaxError
from .schema import Diagnostic, RenderResult
from .viewport import ViewportEngine

logger = logging.getLogger(__name__)

RENDER_ID = "mermaid-diagram"


class DiagramEngine(Protocol):
    async def parse(self, text: str) -> bool:
        ...

    async def render(self, render_id: str, text: str) -> RenderResult:
        ...


class Debouncer:
    """Run ``func`` once ``wait`` seconds after the most recent call.

    Pending timers are cancelled by newer calls; a run that has already
    started is left alone.
    """

    def __init__(self, func: Callable[[], Awaitable[None]], wait: float):
        self._func = func
        self._wait = wait
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

    def __call__(self) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._wait, self._fire)

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.get_running_loop().create_task(self._func())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _running(self) -> list[asyncio.Task]:
        return [task for task in self._tasks if not task.done()]

    @property
    def pending(self) -> bool:
        return self._handle is not None or bool(self._running())

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def flush(self) -> None:
        """Wait until no timer is pending and every started run has finished."""
        while True:
            if self._handle is not None:
                await asyncio.sleep(self._wait / 4 or 0.001)
                continue
            running = self._running()
            if not running:
                return
            await asyncio.gather(*running, return_exceptions=True)


class RenderPipeline:
    def __init__(
        self,
        buffer: DiagramBuffer,
        engine: DiagramEngine,
        viewport: ViewportEngine,
        on_persist: Callable[[str], None] | None = None,
        debounce_seconds: float = 0.5,
    ):
        self._buffer = buffer
        self._engine = engine
        self._viewport = viewport
        self._on_persist = on_persist
        self._request_token = 0
        self._debounced = Debouncer(self.render_now, debounce_seconds)
        self.svg: str | None = None
        self.diagnostic: Diagnostic | None = None
        self.render_count = 0

    def attach(self) -> Callable[[], None]:
        """Re-render whenever the buffer changes."""
        return self._buffer.on_change(lambda text, writer: self.schedule())

    def schedule(self) -> None:
        self._debounced()

    async def flush(self) -> None:
        await self._debounced.flush()

    def cancel_pending(self) -> None:
        self._debounced.cancel()

    def dismiss_diagnostic(self) -> None:
        self.diagnostic = None

    def _persist(self, source: str) -> None:
        if self._on_persist is not None:
            self._on_persist(source)

    async def render_now(self) -> bool:
        """One validate+render cycle for the current buffer. Returns True if
        this cycle's result was applied."""
        self._request_token += 1
        token = self._request_token
        source = self._buffer.text

        if not source.strip():
            self.svg = None
            self.diagnostic = None
            self._persist(source)
            return True

        try:
            if not await self._engine.parse(source):
                raise DiagramSyntaxError("Invalid diagram syntax")
            # The result only becomes visible below, after the token check.
            result = await self._engine.render(RENDER_ID, source)
        except Exception as e:
            if token != self._request_token:
                logger.debug("Discarding failure of superseded render %d", token)
                return False
            raw = getattr(e, "message", None) or str(e) or "Failed to render diagram"
            logger.debug("Render %d failed: %s", token, raw)
            self.diagnostic = build_diagnostic(raw, source)
            return True

        if token != self._request_token:
            logger.debug("Discarding superseded render %d (latest %d)", token, self._request_token)
            return False

        self.svg = result.svg
        self.diagnostic = None
        self.render_count += 1
        self._persist(source)
        width, height = svg_size(result.svg)
        if self._viewport.auto_fit_if_default(width, height):
            logger.info("Auto-fitted %sx%s diagram: %s", width, height, self._viewport.transform())
        return True
