"""Pydantic models shared by the studio components and the HTTP layer."""
from typing import Literal

from pydantic import BaseModel, Field


class Diagnostic(BaseModel):
    """Structured render/validation failure shown over the preview."""

    message: str = Field(description="Cleaned, user-facing error text.")
    severity: Literal["error"] = "error"
    line: int | None = Field(default=None, description="1-indexed line in the diagram source.")
    column: int | None = Field(default=None, description="1-indexed column, when the engine reports one.")
    source: Literal["diagram-engine"] = "diagram-engine"


class RenderResult(BaseModel):
    """What the diagram engine's render step returns."""

    svg: str


class ViewportConfig(BaseModel):
    min_scale: float = 0.5
    max_scale: float = 20.0
    min_width: float = Field(default=20.0, description="Minimum editor pane width, in percent.")
    zoom_factor: float = 0.1


class ViewportState(BaseModel):
    """Pan/zoom state of the preview. The displayed transform is
    translate(translate + zoom_translate) scale(scale)."""

    scale: float = 1.0
    translate_x: float = 0.0
    translate_y: float = 0.0
    zoom_translate_x: float = 0.0
    zoom_translate_y: float = 0.0
    is_dragging: bool = False
    is_resizing: bool = False
    start_x: float = 0.0
    start_y: float = 0.0


class PersistedLayout(BaseModel):
    editor_width: str | None = Field(default=None, description="Editor pane width, e.g. '35.5%'.")
    fragment: str = Field(default="", description="URL fragment holding the compressed diagram source.")


class LaunchOptions(BaseModel):
    """Options read from the page URL at session start."""

    room: str | None = None
    name: str
    hide_editor: bool = False
    fragment: str | None = None


# ----- HTTP request / response bodies -----


class BufferUpdate(BaseModel):
    text: str


class PromptRequest(BaseModel):
    prompt: str


class SessionRequest(BaseModel):
    url: str = Field(default="", description="Full page URL, query string and fragment included.")


class PointerPosition(BaseModel):
    x: float
    y: float


class ZoomRequest(PointerPosition):
    direction: float = Field(description="Positive zooms in, negative zooms out.")


class ZoomButtonRequest(BaseModel):
    direction: Literal["in", "out"]


class ContainerSize(BaseModel):
    width: float = Field(gt=0)
    height: float = Field(gt=0)


class ResizeRequest(BaseModel):
    pointer_x: float
    container_width: float = Field(gt=0)


class RemoteUpdate(BaseModel):
    text: str


class StudioState(BaseModel):
    text: str
    read_only: bool
    svg: str | None
    diagnostic: Diagnostic | None
    transform: str
    viewport: ViewportState
    layout: PersistedLayout
    status: str
    generating: bool
    view_only: bool
    room: str | None = None
