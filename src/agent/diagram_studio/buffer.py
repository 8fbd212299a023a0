"""The single shared diagram buffer.

Writes are full-text replacements. Every write carries a writer kind and a
claim token; a token that has been superseded by a newer claim is refused,
so the last writer to claim the buffer wins and late writes from an older
owner (e.g. a cancelled stream) are dropped.
"""
import enum
import logging
from typing import Callable

from .errors import BufferLockedError

logger = logging.getLogger(__name__)


class Writer(str, enum.Enum):
    USER = "user"
    STREAM = "stream"
    COLLAB = "collab"


ChangeListener = Callable[[str, Writer], None]


class DiagramBuffer:
    def __init__(self, text: str = ""):
        self._text = text
        self._read_only = False
        self._token = 0
        self._owner: Writer | None = None
        self._listeners: list[ChangeListener] = []

    @property
    def text(self) -> str:
        return self._text

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def owner(self) -> Writer | None:
        return self._owner

    def set_read_only(self, read_only: bool) -> None:
        self._read_only = read_only

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def claim(self, writer: Writer) -> int:
        """Take ownership for ``writer`` and return the new claim token."""
        self._token += 1
        self._owner = writer
        return self._token

    def is_current(self, token: int) -> bool:
        return token == self._token

    def write(self, text: str, writer: Writer, token: int | None = None) -> bool:
        """Replace the buffer contents.

        Without a token the write claims the buffer itself. Returns False when
        the token is stale or the text is unchanged.
        """
        if writer is Writer.USER and self._read_only:
            raise BufferLockedError()
        if token is None:
            token = self.claim(writer)
        elif not self.is_current(token):
            logger.debug("Dropping stale %s write (token %d, current %d)", writer.value, token, self._token)
            return False
        if text == self._text:
            return False
        self._text = text
        for listener in list(self._listeners):
            listener(text, writer)
        return True
