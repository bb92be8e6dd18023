"""
viewport.py - Zoom, pan and rotation of the displayed frame.

The view transform is independent of windowing: it only decides where the
windowed frame lands in the viewport.  ``matrix`` returns the 3x3 affine
that maps image pixel coordinates to viewport coordinates:

    translate(viewport centre + pan)
      . rotate(rotation)
      . scale(fit_scale * zoom)
      . translate(-image centre)

``fit_scale`` is the largest scale at which the (rotated) image fits the
viewport, so zoom=1.0 means "fit to window".
"""

import math
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from wlengine.config import CONFIG


def _clamp_zoom(zoom: float) -> float:
    view_cfg = CONFIG["view"]
    return max(view_cfg["min_zoom"], min(view_cfg["max_zoom"], zoom))


@dataclass(frozen=True)
class ViewTransform:
    zoom: float = 1.0
    pan: tuple[float, float] = (0.0, 0.0)
    rotation: int = 0  # degrees, multiple of 90

    def zoom_in(self, step: Optional[float] = None) -> "ViewTransform":
        step = step or CONFIG["view"]["zoom_step"]
        return replace(self, zoom=_clamp_zoom(self.zoom * step))

    def zoom_out(self, step: Optional[float] = None) -> "ViewTransform":
        step = step or CONFIG["view"]["zoom_step"]
        return replace(self, zoom=_clamp_zoom(self.zoom / step))

    def wheel(self, delta: float) -> "ViewTransform":
        """Mouse-wheel zoom; always re-centres the image."""
        step = CONFIG["view"]["wheel_zoom_step"]
        if delta > 0:
            zoom = _clamp_zoom(self.zoom * step)
        elif delta < 0:
            zoom = _clamp_zoom(self.zoom / step)
        else:
            zoom = self.zoom
        return replace(self, zoom=zoom, pan=(0.0, 0.0))

    def rotate_left(self) -> "ViewTransform":
        return replace(self, rotation=(self.rotation + 270) % 360)

    def rotate_right(self) -> "ViewTransform":
        return replace(self, rotation=(self.rotation + 90) % 360)

    def panned(self, dx: float, dy: float) -> "ViewTransform":
        return replace(self, pan=(self.pan[0] + dx, self.pan[1] + dy))

    def fit(self) -> "ViewTransform":
        return replace(self, zoom=1.0, pan=(0.0, 0.0))

    def reset(self) -> "ViewTransform":
        return ViewTransform()

    def fit_scale(self, image_size: tuple[int, int], viewport_size: tuple[int, int]) -> float:
        width, height = image_size
        if self.rotation % 180 == 90:
            width, height = height, width
        if width <= 0 or height <= 0:
            return 1.0
        return min(viewport_size[0] / width, viewport_size[1] / height)

    def matrix(
        self,
        image_size: tuple[int, int],
        viewport_size: Optional[tuple[int, int]] = None,
    ) -> np.ndarray:
        """
        Affine from image (x, y) to viewport (x, y).

        Without *viewport_size* the viewport is taken to be the image
        itself, so the identity transform maps every pixel onto itself.
        """
        if viewport_size is None:
            viewport_size = image_size
        scale = self.fit_scale(image_size, viewport_size) * self.zoom

        theta = math.radians(self.rotation)
        cos_t = round(math.cos(theta))
        sin_t = round(math.sin(theta))

        to_origin = np.array([
            [1.0, 0.0, -image_size[0] / 2.0],
            [0.0, 1.0, -image_size[1] / 2.0],
            [0.0, 0.0, 1.0],
        ])
        scaling = np.diag([scale, scale, 1.0])
        rotate = np.array([
            [cos_t, -sin_t, 0.0],
            [sin_t, cos_t, 0.0],
            [0.0, 0.0, 1.0],
        ])
        to_viewport = np.array([
            [1.0, 0.0, viewport_size[0] / 2.0 + self.pan[0]],
            [0.0, 1.0, viewport_size[1] / 2.0 + self.pan[1]],
            [0.0, 0.0, 1.0],
        ])
        return to_viewport @ rotate @ scaling @ to_origin
