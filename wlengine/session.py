"""
session.py - Interactive window/level session for one displayed image.

The host event loop turns drags, wheel ticks and slider moves into
WindowUpdate values and submits them as they arrive.  Nothing is rendered
at submit time.  When the surface is ready to paint, ``frame()`` applies
every queued update in arrival order and renders once: the transform is
stateless given the latest parameters, so intermediate states never need
to be drawn.

All state (window, palette, view) is held here and passed explicitly to
the renderer and converter on every call.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional

from wlengine.config import CONFIG
from wlengine.converter import DisplayBuffer, render_snapshot
from wlengine.image import RawImage, WindowLevel
from wlengine.palettes import PaletteKind, next_palette
from wlengine.renderer import Frame, RealtimeRenderer, RenderParams
from wlengine.viewport import ViewTransform
from wlengine.windowing import preset_window

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowUpdate:
    """One user-driven change to the current window."""
    action: str
    first: float = 0.0
    second: float = 0.0
    preset: Optional[str] = None

    @classmethod
    def set(cls, center: float, width: float) -> "WindowUpdate":
        return cls("set", center, width)

    @classmethod
    def drag(cls, dx: float, dy: float) -> "WindowUpdate":
        return cls("drag", dx, dy)

    @classmethod
    def center(cls, value: float) -> "WindowUpdate":
        return cls("center", value)

    @classmethod
    def width(cls, value: float) -> "WindowUpdate":
        return cls("width", value)

    @classmethod
    def named_preset(cls, name: str) -> "WindowUpdate":
        return cls("preset", preset=name)

    @classmethod
    def reset(cls) -> "WindowUpdate":
        return cls("reset")

    def apply_to(self, image: RawImage) -> WindowLevel:
        state = image.window
        if self.action == "set":
            return state.set(WindowLevel(self.first, self.second))
        if self.action == "drag":
            return state.drag(self.first, self.second)
        if self.action == "center":
            return state.set_center(self.first)
        if self.action == "width":
            return state.set_width(self.first)
        if self.action == "preset":
            return state.apply_preset(self.preset)
        if self.action == "reset":
            return state.reset()
        raise ValueError(f"Unknown window update action '{self.action}'.")


class ViewerSession:
    """
    Window, palette and view state of one image on one display surface.

    Args:
        image: The displayed image (its window state is mutated in place)
        renderer: Renderer to draw with; one is created (and owned) if omitted
        palette: Initial palette; defaults to ``display.default_palette``
        viewport_size: (width, height) of the surface, for the view matrix
    """

    def __init__(
        self,
        image: RawImage,
        renderer: Optional[RealtimeRenderer] = None,
        palette: Optional[PaletteKind] = None,
        viewport_size: Optional[tuple[int, int]] = None,
    ):
        self.image = image
        self.viewport_size = viewport_size
        self.view = ViewTransform()
        self._palette = palette or PaletteKind.from_name(CONFIG["display"]["default_palette"])
        self._pending: deque[WindowUpdate] = deque()
        self._last_params: Optional[RenderParams] = None
        self._last_frame: Optional[Frame] = None

        self._owns_renderer = renderer is None
        self._renderer = renderer or RealtimeRenderer()
        self._renderer.load(image)
        self._renderer.set_palette(self._palette)

    # ------------------------------------------------------------------
    # Window / level
    # ------------------------------------------------------------------

    @property
    def window(self) -> WindowLevel:
        """Current window, including updates not yet applied."""
        self.flush()
        return self.image.window.current

    @property
    def pending(self) -> int:
        return len(self._pending)

    def submit(self, update: WindowUpdate) -> None:
        self._pending.append(update)

    def drag(self, dx: float, dy: float) -> None:
        self.submit(WindowUpdate.drag(dx, dy))

    def set_window(self, center: float, width: float) -> None:
        self.submit(WindowUpdate.set(center, width))

    def set_center(self, center: float) -> None:
        self.submit(WindowUpdate.center(center))

    def set_width(self, width: float) -> None:
        self.submit(WindowUpdate.width(width))

    def apply_preset(self, name: str) -> None:
        """Queue a named preset; an unknown name raises ValueError here."""
        preset_window(name)
        self.submit(WindowUpdate.named_preset(name))

    def reset_window(self) -> None:
        self.submit(WindowUpdate.reset())

    def flush(self) -> WindowLevel:
        """
        Apply every queued update, oldest first.

        An update that fails is logged and skipped; the window keeps the
        value it had before that update and the rest of the queue still
        applies.
        """
        applied = 0
        while self._pending:
            update = self._pending.popleft()
            try:
                update.apply_to(self.image)
            except ValueError as exc:
                logger.warning("Skipping window update %s: %s", update, exc)
                continue
            applied += 1
        if applied:
            logger.debug("Applied %d window update(s): %s", applied, self.image.window.current)
        return self.image.window.current

    # ------------------------------------------------------------------
    # Palette and view
    # ------------------------------------------------------------------

    @property
    def palette(self) -> PaletteKind:
        return self._palette

    def set_palette(self, kind: PaletteKind) -> None:
        self._palette = kind
        self._renderer.set_palette(kind)

    def cycle_palette(self, step: int = 1) -> PaletteKind:
        self.set_palette(next_palette(self._palette, step))
        return self._palette

    def zoom_in(self) -> None:
        self.view = self.view.zoom_in()

    def zoom_out(self) -> None:
        self.view = self.view.zoom_out()

    def wheel(self, delta: float) -> None:
        self.view = self.view.wheel(delta)

    def rotate_left(self) -> None:
        self.view = self.view.rotate_left()

    def rotate_right(self) -> None:
        self.view = self.view.rotate_right()

    def pan(self, dx: float, dy: float) -> None:
        self.view = self.view.panned(dx, dy)

    def reset_view(self) -> None:
        self.view = self.view.reset()

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def render_params(self) -> RenderParams:
        self.flush()
        return RenderParams.for_image(self.image, self._palette, self.view, self.viewport_size)

    def frame(self) -> Frame:
        """Render the latest state; unchanged parameters reuse the last frame."""
        params = self.render_params()
        if params == self._last_params and self._last_frame is not None:
            return self._last_frame
        self._last_frame = self._renderer.render(params)
        self._last_params = params
        return self._last_frame

    def snapshot(self) -> DisplayBuffer:
        """Static CPU rendering of the current state (thumbnail, export)."""
        return render_snapshot(self.image, self._palette, self.window)

    def close(self) -> None:
        self._pending.clear()
        self._last_frame = None
        self._last_params = None
        if self._owns_renderer:
            self._renderer.release()
        else:
            self._renderer.unload()
