"""URL fragment codec for the diagram source, plus the persisted editor width.

The fragment is zlib-deflated UTF-8, base64url-encoded without padding, the
same deflate+base64url scheme mermaid.ink and Kroki URLs use.
"""
import base64
import binascii
import logging
import zlib
from pathlib import Path

from pydantic import ValidationError

from .config import get_layout_path
from .schema import PersistedLayout

logger = logging.getLogger(__name__)


def encode(source: str) -> str:
    """Compress ``source`` into a URL-safe fragment. Blank source clears the fragment."""
    if not source.strip():
        return ""
    compressed = zlib.compress(source.encode("utf-8"), level=9)
    return base64.urlsafe_b64encode(compressed).decode("ascii").rstrip("=")


def decode(fragment: str | None) -> str | None:
    """Inverse of :func:`encode`. Returns None for an absent or corrupt fragment."""
    if fragment is None:
        return None
    fragment = fragment.lstrip("#").strip()
    if not fragment:
        return ""
    try:
        padded = fragment + "=" * (-len(fragment) % 4)
        compressed = base64.urlsafe_b64decode(padded.encode("ascii"))
        return zlib.decompress(compressed).decode("utf-8")
    except (binascii.Error, zlib.error, UnicodeError, ValueError) as e:
        logger.warning("Ignoring corrupt diagram fragment (%d chars): %s", len(fragment), e)
        return None


class LayoutStore:
    """Editor pane width, kept in a small JSON file independent of the diagram."""

    def __init__(self, path: Path | None = None):
        self.path = path or get_layout_path()

    def load(self) -> PersistedLayout:
        try:
            return PersistedLayout.model_validate_json(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return PersistedLayout()
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable layout file %s: %s", self.path, e)
            return PersistedLayout()

    def get_editor_width(self) -> str | None:
        return self.load().editor_width

    def set_editor_width(self, width: str) -> None:
        layout = PersistedLayout(editor_width=width)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(layout.model_dump_json(include={"editor_width"}), encoding="utf-8")
        except OSError:
            logger.exception("Failed to persist editor width to %s", self.path)
