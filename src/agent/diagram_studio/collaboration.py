"""Launch options from the page URL and the collaboration binding.

The CRDT document and its transport live outside this process; the binding
only mirrors text between them and the buffer. Remote text enters the
buffer as the COLLAB writer. Writes replace the whole document, so only the
newest local (user or stream) text is kept for the transport to pick up.
"""
import logging
import random
from typing import Callable
from urllib.parse import parse_qs, urlsplit

from .buffer import DiagramBuffer, Writer
from .schema import LaunchOptions

logger = logging.getLogger(__name__)


def random_user_name() -> str:
    return f"User {random.randrange(1000)}"


def random_color() -> str:
    return f"#{random.randrange(0x1000000):06x}"


def parse_launch_options(url: str | None) -> LaunchOptions:
    """?room=<id>&name=<display name>&hideEditor plus the #fragment."""
    parts = urlsplit(url or "")
    query = parse_qs(parts.query, keep_blank_values=True)
    room = (query.get("room") or [""])[0].strip() or None
    name = (query.get("name") or [""])[0].strip() or random_user_name()
    return LaunchOptions(
        room=room,
        name=name,
        hide_editor="hideEditor" in query,
        fragment=parts.fragment or None,
    )


class CollaborationBinding:
    def __init__(self, buffer: DiagramBuffer, room: str, name: str, color: str | None = None):
        self._buffer = buffer
        self.room = room
        self.awareness = {"name": name, "color": color or random_color()}
        self.pending: str | None = None
        self._detach: Callable[[], None] | None = None

    def attach(self) -> None:
        if self._detach is None:
            self._detach = self._buffer.on_change(self._on_local_change)
            logger.info("Joined collaboration room %s as %s", self.room, self.awareness["name"])

    def detach(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None

    def _on_local_change(self, text: str, writer: Writer) -> None:
        # Remote text came from the peers already; echoing it would loop, and
        # any unsent local text is now older than the shared document.
        if writer is Writer.COLLAB:
            self.pending = None
            return
        self.pending = text

    def apply_remote(self, text: str) -> bool:
        """Merge a peer's document state into the buffer (last writer wins)."""
        return self._buffer.write(text, Writer.COLLAB)

    def drain(self) -> list[str]:
        """The latest local text not yet sent to the peers (at most one entry)."""
        if self.pending is None:
            return []
        text, self.pending = self.pending, None
        return [text]
