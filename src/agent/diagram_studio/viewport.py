"""Pan/zoom/fit math for the diagram preview.

Coordinates are container pixels with the origin at the container's top-left
corner; the content is drawn with transform-origin 0 0, so a content point c
appears at translate + c * scale.
"""
import logging
import math

from .schema import ViewportConfig, ViewportState

logger = logging.getLogger(__name__)

FIT_MARGIN = 0.9


class ViewportEngine:
    def __init__(self, config: ViewportConfig | None = None, state: ViewportState | None = None):
        self.config = config or ViewportConfig()
        self.state = state or ViewportState()
        self.container_width = 0.0
        self.container_height = 0.0

    # ----- helpers -----

    def clamp_scale(self, scale: float) -> float:
        return min(max(scale, self.config.min_scale), self.config.max_scale)

    def is_default(self) -> bool:
        """True while the user has not panned, zoomed or been auto-fitted yet."""
        s = self.state
        return s.scale == 1 and s.translate_x == 0 and s.translate_y == 0

    def effective_translate(self) -> tuple[float, float]:
        s = self.state
        return s.translate_x + s.zoom_translate_x, s.translate_y + s.zoom_translate_y

    def transform(self) -> str:
        tx, ty = self.effective_translate()
        return f"translate({tx}px, {ty}px) scale({self.state.scale})"

    def set_container(self, width: float, height: float) -> None:
        self.container_width = width
        self.container_height = height

    def _fold_zoom_translate(self) -> None:
        s = self.state
        s.translate_x += s.zoom_translate_x
        s.translate_y += s.zoom_translate_y
        s.zoom_translate_x = 0.0
        s.zoom_translate_y = 0.0

    # ----- zoom -----

    def zoom_at(self, pointer_x: float, pointer_y: float, direction: float) -> None:
        """Zoom one step in (direction > 0) or out (< 0), keeping the content
        point under the pointer where it is.

        A step in multiplies the scale by ``1 + zoom_factor``; a step out divides
        by it (not ``1 - zoom_factor``), so zooming in then out restores the view.
        """
        if direction == 0:
            return
        step = 1 + self.config.zoom_factor
        factor = step if direction > 0 else 1 / step
        old_scale = self.state.scale
        new_scale = self.clamp_scale(old_scale * factor)
        if new_scale == old_scale:
            return
        ratio = new_scale / old_scale

        # Pointer position relative to the content's current top-left corner.
        tx, ty = self.effective_translate()
        local_x = pointer_x - tx
        local_y = pointer_y - ty

        self.state.zoom_translate_x += local_x - local_x * ratio
        self.state.zoom_translate_y += local_y - local_y * ratio
        self.state.scale = new_scale
        self._fold_zoom_translate()

    def zoom_button(self, direction: str) -> None:
        """Zoom anchored at the container centre (toolbar +/- buttons)."""
        sign = 1 if direction == "in" else -1
        self.zoom_at(self.container_width / 2, self.container_height / 2, sign)

    # ----- pan -----

    def pan_start(self, x: float, y: float) -> None:
        s = self.state
        s.is_dragging = True
        s.start_x = x - s.translate_x
        s.start_y = y - s.translate_y

    def pan_move(self, x: float, y: float) -> bool:
        s = self.state
        if not s.is_dragging:
            return False
        s.translate_x = x - s.start_x
        s.translate_y = y - s.start_y
        return True

    def pan_end(self) -> None:
        self.state.is_dragging = False

    # ----- fit -----

    def auto_fit(
        self,
        content_width: float,
        content_height: float,
        viewport_width: float | None = None,
        viewport_height: float | None = None,
    ) -> bool:
        """Scale the content to 90% of the container and centre it."""
        vw = self.container_width if viewport_width is None else viewport_width
        vh = self.container_height if viewport_height is None else viewport_height
        if min(content_width, content_height, vw, vh) <= 0:
            logger.debug("Skipping auto-fit: content %sx%s, viewport %sx%s", content_width, content_height, vw, vh)
            return False
        scale = min(vw / content_width, vh / content_height, self.config.max_scale) * FIT_MARGIN
        scale = self.clamp_scale(scale)
        if not math.isfinite(scale):
            return False
        s = self.state
        s.scale = scale
        s.translate_x = (vw - content_width * scale) / 2
        s.translate_y = (vh - content_height * scale) / 2
        s.zoom_translate_x = 0.0
        s.zoom_translate_y = 0.0
        return True

    def auto_fit_if_default(self, content_width: float, content_height: float) -> bool:
        if not self.is_default():
            return False
        return self.auto_fit(content_width, content_height)

    def reset(self) -> None:
        self.state = ViewportState()

    # ----- editor pane resize -----

    def resize_start(self) -> None:
        self.state.is_resizing = True

    def resize_move(self, pointer_x: float, container_width: float) -> float | None:
        """New editor pane width in percent, never below ``min_width``."""
        if not self.state.is_resizing or container_width <= 0:
            return None
        width = pointer_x / container_width * 100
        return max(width, self.config.min_width)

    def resize_end(self) -> None:
        self.state.is_resizing = False
