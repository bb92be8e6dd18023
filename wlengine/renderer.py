"""
renderer.py - Interactive rendering with a GPU shading path and CPU fallback.

The accelerated path uploads the raw samples once per image as a device
"texture" and the 256-entry palette as a second one, then evaluates the
window/level formula per pixel in a CUDA elementwise kernel every time the
user drags or moves a slider.  Nothing on the host is recomputed for an
interaction frame.

Texture layout
--------------
Samples are stored unsigned: signed 16-bit values are offset by +32768 on
upload.  The kernel receives the image's domain bounds as constants and
reconstructs ``raw = texel + domain_min`` before applying exactly the
formula of ``wlengine.windowing.build_window_lut``.  RGB sources are
uploaded as-is and bypass windowing.

Fallback
--------
If CuPy is not installed, no CUDA device is present, the kernel fails to
compile, or a device allocation fails, the renderer switches to the CPU
converter for the rest of its life.  That is logged once, as a warning; it
is never raised to the caller.  In CPU mode the frame is recomputed
whenever the window, inversion or palette changes.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

try:
    import cupy as cp
    HAS_CUPY = True
except ImportError:
    HAS_CUPY = False
    cp = None

from wlengine.config import CONFIG
from wlengine.converter import (
    DisplayBuffer,
    PixelFormat,
    check_displayable,
    to_display,
)
from wlengine.image import RawImage, WindowLevel
from wlengine.palettes import PaletteKind, PaletteTable
from wlengine.viewport import ViewTransform

logger = logging.getLogger(__name__)


# Per-pixel window/level, identical to build_window_lut().
_WINDOW_LEVEL_SOURCE = r"""
double raw = (double)texel + value_min;
if (raw > value_max) {
    raw = value_max;
}
double v = 0.0;
if (ww > 0.0) {
    double lower = wc - ww / 2.0;
    double upper = wc + ww / 2.0;
    if (raw <= lower) {
        v = 0.0;
    } else if (raw >= upper) {
        v = 255.0;
    } else {
        v = floor((raw - lower) * (255.0 / ww));
        v = fmin(fmax(v, 0.0), 255.0);
    }
    if (invert) {
        v = 255.0 - v;
    }
}
out = (unsigned char)v;
"""


@dataclass(frozen=True)
class RenderParams:
    """Live parameters of one interactive frame."""
    center: float
    width: float
    invert: bool = False
    palette: PaletteKind = PaletteKind.GRAYSCALE
    view: ViewTransform = field(default_factory=ViewTransform)
    viewport_size: Optional[tuple[int, int]] = None

    @classmethod
    def for_image(
        cls,
        image: RawImage,
        palette: PaletteKind = PaletteKind.GRAYSCALE,
        view: Optional[ViewTransform] = None,
        viewport_size: Optional[tuple[int, int]] = None,
    ) -> "RenderParams":
        """Parameters from the image's current window and photometric interpretation."""
        window = image.window.current
        return cls(
            center=window.center,
            width=window.width,
            invert=image.inverts,
            palette=palette,
            view=view or ViewTransform(),
            viewport_size=viewport_size,
        )

    @property
    def window(self) -> WindowLevel:
        return WindowLevel(self.center, self.width)


@dataclass(frozen=True, eq=False)
class Frame:
    """A rendered frame: windowed pixels plus where to place them."""
    buffer: DisplayBuffer
    matrix: np.ndarray
    backend: str

    @property
    def is_empty(self) -> bool:
        return self.buffer.is_empty


class ShadingBackend(ABC):
    """Device-side evaluation of the window/level/palette function."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for logging."""
        pass

    @abstractmethod
    def upload_samples(self, texels: np.ndarray, domain_min: int, domain_max: int) -> None:
        """
        Upload the sample texture.

        Args:
            texels: (H, W) unsigned samples offset to start at zero, or
                (H, W, 3) uint8 for RGB sources
            domain_min: Stored value of texel 0
            domain_max: Largest stored value of the domain
        """
        pass

    @abstractmethod
    def upload_palette(self, table: Optional[np.ndarray]) -> None:
        """Upload a (256, 3) palette, or drop it with None (grayscale)."""
        pass

    @abstractmethod
    def shade(self, center: float, width: float, invert: bool) -> np.ndarray:
        """
        Evaluate one frame and read it back.

        Returns:
            (H, W) uint8 without a palette, (H, W, 3) uint8 with a palette
            or for RGB sources
        """
        pass

    @abstractmethod
    def release(self) -> None:
        """Free every device resource."""
        pass


class CupyShadingBackend(ShadingBackend):
    """
    CUDA shading through a CuPy elementwise kernel.

    The kernel is compiled in the constructor so that a build failure is
    detected before the first image is shown.
    """

    def __init__(self):
        if not HAS_CUPY:
            raise ImportError(
                "CuPy is required for GPU rendering. "
                "Install with: pip install cupy-cuda12x (or appropriate version)"
            )
        if cp.cuda.runtime.getDeviceCount() < 1:
            raise RuntimeError("No CUDA device available.")

        self._kernel = cp.ElementwiseKernel(
            "T texel, float64 value_min, float64 value_max, float64 wc, float64 ww, int32 invert",
            "uint8 out",
            _WINDOW_LEVEL_SOURCE,
            "wlengine_window_level",
        )
        # Force compilation now rather than on the first frame.
        probe = cp.zeros(1, dtype=cp.uint16)
        self._kernel(probe, 0.0, 65535.0, 0.0, 1.0, 0)

        self._texture = None
        self._palette = None
        self._is_rgb = False
        self._domain = (0.0, 255.0)
        logger.info("GPU shading backend initialized (CuPy)")

    @property
    def name(self) -> str:
        return "GPU (CuPy)"

    def upload_samples(self, texels: np.ndarray, domain_min: int, domain_max: int) -> None:
        self._texture = None
        self._texture = cp.asarray(texels)
        self._is_rgb = texels.ndim == 3
        self._domain = (float(domain_min), float(domain_max))
        logger.debug(
            "Uploaded %s texture %s, domain=[%d, %d]",
            texels.dtype, texels.shape, domain_min, domain_max,
        )

    def upload_palette(self, table: Optional[np.ndarray]) -> None:
        self._palette = None if table is None else cp.asarray(table)

    def shade(self, center: float, width: float, invert: bool) -> np.ndarray:
        if self._texture is None:
            raise RuntimeError("No sample texture uploaded.")
        if self._is_rgb:
            return cp.asnumpy(self._texture)

        value_min, value_max = self._domain
        out = self._kernel(
            self._texture, value_min, value_max,
            float(center), float(width), int(bool(invert)),
        )
        if self._palette is not None:
            out = self._palette[out]
        return cp.asnumpy(out)

    def release(self) -> None:
        self._texture = None
        self._palette = None


class RealtimeRenderer:
    """
    Render frames for one display surface.

    Usage::

        with RealtimeRenderer() as renderer:
            renderer.load(image)
            renderer.set_palette(PaletteKind.HOT)
            frame = renderer.render(RenderParams.for_image(image, PaletteKind.HOT))
    """

    def __init__(
        self,
        prefer_gpu: Optional[bool] = None,
        backend: Optional[ShadingBackend] = None,
    ):
        if prefer_gpu is None:
            prefer_gpu = CONFIG["renderer"]["prefer_gpu"]

        self._backend: Optional[ShadingBackend] = None
        self._fallback_notified = False
        self._image: Optional[RawImage] = None
        self._texture_ready = False
        self._palette = PaletteKind.GRAYSCALE

        if backend is not None:
            self._backend = backend
        elif prefer_gpu:
            self._backend = self._create_gpu_backend()

        logger.info("Renderer using backend: %s", self.backend_name)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def backend_name(self) -> str:
        return self._backend.name if self._backend is not None else "CPU (converter)"

    @property
    def using_fallback(self) -> bool:
        return self._backend is None

    @property
    def image(self) -> Optional[RawImage]:
        return self._image

    @property
    def texture_ready(self) -> bool:
        return self._texture_ready

    @property
    def palette(self) -> PaletteKind:
        return self._palette

    def _create_gpu_backend(self) -> Optional[ShadingBackend]:
        try:
            return CupyShadingBackend()
        except Exception as exc:
            self._fall_back(exc)
            return None

    def _fall_back(self, exc: Exception) -> None:
        if self._backend is not None:
            try:
                self._backend.release()
            except Exception as release_exc:
                logger.debug("Ignoring error while releasing GPU resources: %s", release_exc)
        self._backend = None
        self._texture_ready = False
        if not self._fallback_notified:
            logger.warning("GPU rendering unavailable (%s). Falling back to CPU.", exc)
            self._fallback_notified = True

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def load(self, image: RawImage) -> None:
        """Attach *image*, releasing the previous image's texture first."""
        self.unload()
        self._image = image

        if self._backend is None:
            return
        reason = check_displayable(image)
        if reason is not None:
            logger.warning("Not uploading image: %s", reason)
            return

        try:
            view = image.sample_view()
            if view.is_rgb:
                texels = view.array.reshape(image.height, image.width, 3)
            else:
                texels = view.offsets().reshape(image.height, image.width)
            self._backend.upload_samples(texels, view.domain.minimum, view.domain.maximum)
            self._upload_palette()
            self._texture_ready = True
        except Exception as exc:
            self._fall_back(exc)

    def unload(self) -> None:
        """Drop the current image and its device texture."""
        if self._backend is not None and self._texture_ready:
            self._backend.release()
        self._image = None
        self._texture_ready = False

    def release(self) -> None:
        """Tear down: free every resource created against this surface."""
        self.unload()
        if self._backend is not None:
            self._backend.release()
        logger.debug("Renderer released")

    close = release

    def __enter__(self) -> "RealtimeRenderer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def set_palette(self, kind: PaletteKind) -> None:
        """Select a palette; re-uploads the palette texture when it changes."""
        if kind is self._palette:
            return
        self._palette = kind
        if self._backend is not None and self._texture_ready:
            try:
                self._upload_palette()
            except Exception as exc:
                self._fall_back(exc)

    def _upload_palette(self) -> None:
        table = PaletteTable.for_kind(self._palette).table if self._palette.uses_color else None
        self._backend.upload_palette(table)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, params: RenderParams) -> Frame:
        """
        Draw one frame with the live *params*.

        The palette in *params* is selected first, so callers may pass a new
        palette directly instead of calling ``set_palette``.
        """
        self.set_palette(params.palette)

        image = self._image
        if image is None:
            return Frame(DisplayBuffer.empty(), np.eye(3), self.backend_name)

        matrix = params.view.matrix((image.width, image.height), params.viewport_size)

        if self._backend is not None and self._texture_ready:
            try:
                pixels = self._backend.shade(params.center, params.width, params.invert)
                fmt = PixelFormat.RGB24 if pixels.ndim == 3 else PixelFormat.GRAY8
                buffer = DisplayBuffer(image.width, image.height, fmt, pixels)
                return Frame(buffer, matrix, self._backend.name)
            except Exception as exc:
                self._fall_back(exc)

        buffer = to_display(
            image,
            params.window,
            PaletteTable.for_kind(params.palette),
            invert=params.invert,
        )
        return Frame(buffer, matrix, self.backend_name)
