"""One editing session: buffer -> render pipeline -> viewport / URL state,
with the AI stream and the collaboration binding as additional buffer writers."""
import logging
from typing import AsyncIterator

from .agent import stream_completion
from .buffer import DiagramBuffer, Writer
from .codec import LayoutStore, decode, encode
from .collaboration import CollaborationBinding, parse_launch_options, random_user_name
from .config import DEFAULT_DIAGRAM, ai_credentials_present, get_debounce_seconds
from .errors import BufferLockedError, ExportError
from .export import export_png, export_svg
from .generation import CompletionFn, GenerationController
from .pipeline import DiagramEngine, RenderPipeline
from .schema import LaunchOptions, PersistedLayout, StudioState, ViewportConfig
from .viewport import ViewportEngine

logger = logging.getLogger(__name__)


class DiagramStudio:
    def __init__(
        self,
        engine: DiagramEngine,
        completion: CompletionFn = stream_completion,
        viewport_config: ViewportConfig | None = None,
        layout_store: LayoutStore | None = None,
        debounce_seconds: float | None = None,
        ai_enabled: bool | None = None,
    ):
        self.engine = engine
        self.buffer = DiagramBuffer()
        self.viewport = ViewportEngine(viewport_config)
        self.layout_store = layout_store or LayoutStore()
        self.layout = PersistedLayout(editor_width=self.layout_store.get_editor_width())
        self.pipeline = RenderPipeline(
            self.buffer,
            engine,
            self.viewport,
            on_persist=self._persist_fragment,
            debounce_seconds=get_debounce_seconds() if debounce_seconds is None else debounce_seconds,
        )
        self.pipeline.attach()
        self.generation = GenerationController(
            self.buffer,
            completion,
            enabled=ai_credentials_present() if ai_enabled is None else ai_enabled,
        )
        self.options = LaunchOptions(name=random_user_name())
        self.collaboration: CollaborationBinding | None = None

    def _persist_fragment(self, source: str) -> None:
        self.layout.fragment = encode(source)

    def start(self, url: str | None = None) -> LaunchOptions:
        """(Re)start the session from a page URL. Must run inside the event loop."""
        options = parse_launch_options(url)
        self.options = options
        if self.collaboration is not None:
            self.collaboration.detach()
            self.collaboration = None

        if options.room:
            # The shared document owns the content; the URL fragment is not loaded.
            self.collaboration = CollaborationBinding(self.buffer, options.room, options.name)
            self.collaboration.attach()
        else:
            text = decode(options.fragment)
            if not text:
                if options.fragment:
                    logger.warning("Falling back to the sample diagram")
                text = DEFAULT_DIAGRAM
            self.buffer.write(text, Writer.USER)
        self.pipeline.schedule()
        return options

    def edit(self, text: str) -> bool:
        """User keystroke: full-text replacement from the editor."""
        if self.options.hide_editor:
            raise BufferLockedError("editor is hidden (view-only)")
        return self.buffer.write(text, Writer.USER)

    def generate(self, prompt: str) -> AsyncIterator[str]:
        """AI prompt: rejected up front in a view-only session, like keystrokes."""
        if self.options.hide_editor:
            raise BufferLockedError("editor is hidden (view-only)")
        return self.generation.stream(prompt)

    def resize_editor(self, pointer_x: float, container_width: float) -> str:
        self.viewport.resize_start()
        width = self.viewport.resize_move(pointer_x, container_width)
        self.viewport.resize_end()
        if width is None:
            return self.layout.editor_width or ""
        value = f"{round(width, 2):g}%"
        self.layout.editor_width = value
        self.layout_store.set_editor_width(value)
        return value

    def export_svg(self) -> bytes:
        return export_svg(self.pipeline.svg)

    async def export_png(self) -> bytes:
        render_png = getattr(self.engine, "render_png", None)
        if render_png is None:
            raise ExportError("The diagram engine cannot produce PNG")
        return await export_png(self.buffer.text, render_png)

    def state(self) -> StudioState:
        return StudioState(
            text=self.buffer.text,
            read_only=self.buffer.read_only or self.options.hide_editor,
            svg=self.pipeline.svg,
            diagnostic=self.pipeline.diagnostic,
            transform=self.viewport.transform(),
            viewport=self.viewport.state.model_copy(),
            layout=self.layout.model_copy(),
            status=self.generation.status,
            generating=self.generation.generating,
            view_only=self.options.hide_editor,
            room=self.options.room,
        )
