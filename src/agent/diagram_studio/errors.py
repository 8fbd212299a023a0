"""Exception hierarchy for the diagram studio.

Engine and stream failures are caught at the pipeline / generation boundary
and turned into diagnostics or status messages; only the HTTP layer maps the
remaining ones to status codes.
"""
from typing import Any


class StudioError(Exception):
    """Base exception for all studio errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DiagramSyntaxError(StudioError):
    """Raised when the diagram engine rejects the source text."""


class RenderServiceError(StudioError):
    """Raised when the rendering service cannot be reached or misbehaves."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        details = {"status_code": status_code} if status_code is not None else None
        super().__init__(message, details)
        self.status_code = status_code


class GenerationError(StudioError):
    """Raised when an AI completion stream fails."""


class ExportError(StudioError):
    """Raised when exporting the rendered diagram fails."""


class BufferLockedError(StudioError):
    """Raised on a user write while the buffer is read-only."""

    def __init__(self, reason: str = "buffer is read-only") -> None:
        super().__init__(reason)
