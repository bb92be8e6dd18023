"""
converter.py - Snapshot conversion of a RawImage to a displayable buffer.

This is the CPU path.  It is used directly for thumbnails, export and
print, and by the realtime renderer whenever the accelerated path is not
available.

    RGB source                -> rows copied verbatim            (RGB24)
    monochrome, Grayscale     -> window/level LUT                (GRAY8)
    monochrome, other palette -> window/level LUT, then palette  (RGB24)

Bad input never raises out of ``to_display``: an invalid, undersized or
unsupported image yields the empty DisplayBuffer and a logged warning.
The function is stateless, so identical inputs give identical bytes.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np

from wlengine.image import PhotometricKind, RawImage, WindowLevel
from wlengine.palettes import PaletteKind, PaletteTable
from wlengine.windowing import apply_window_lut, lut_for_domain

logger = logging.getLogger(__name__)


class PixelFormat(Enum):
    GRAY8 = 1
    RGB24 = 3

    @property
    def bytes_per_pixel(self) -> int:
        return self.value


@dataclass(frozen=True, eq=False)
class DisplayBuffer:
    """
    Output pixels, exclusively owned by the caller.

    ``pixels`` has shape (height, width) for GRAY8 and (height, width, 3)
    for RGB24.  Rows are packed: ``bytes_per_row == width * bytes_per_pixel``.
    """
    width: int
    height: int
    format: PixelFormat
    pixels: np.ndarray = field(repr=False)

    @classmethod
    def empty(cls) -> "DisplayBuffer":
        return cls(0, 0, PixelFormat.GRAY8, np.zeros((0, 0), dtype=np.uint8))

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    @property
    def bytes_per_pixel(self) -> int:
        return self.format.bytes_per_pixel

    @property
    def bytes_per_row(self) -> int:
        return self.width * self.bytes_per_pixel

    def as_array(self) -> np.ndarray:
        return self.pixels

    def to_bytes(self) -> bytes:
        return self.pixels.tobytes()

    def __eq__(self, other) -> bool:
        if not isinstance(other, DisplayBuffer):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and self.format is other.format
            and np.array_equal(self.pixels, other.pixels)
        )


def check_displayable(image: RawImage) -> Optional[str]:
    """Return why *image* cannot be displayed, or None if it can."""
    if not image.is_valid:
        return "invalid image (empty data, zero dimensions or unknown photometric interpretation)"
    if len(image.data) < image.expected_byte_length:
        return (
            f"pixel data too small ({len(image.data)} bytes, "
            f"expected {image.expected_byte_length})"
        )
    if image.is_rgb:
        if image.photometric is not PhotometricKind.RGB or image.bits_allocated != 8:
            return (
                f"unsupported format: {image.photometric.value} with "
                f"{image.samples_per_pixel} samples of {image.bits_allocated} bits"
            )
        return None
    if not image.photometric.is_monochrome:
        return f"unsupported format: {image.photometric.value}"
    if image.bits_allocated not in (8, 16):
        return f"unsupported format: {image.bits_allocated}-bit samples"
    return None


def _convert_rgb(image: RawImage) -> DisplayBuffer:
    row_bytes = image.width * 3
    src = np.frombuffer(image.data, dtype=np.uint8, count=row_bytes * image.height)
    pixels = src.reshape(image.height, image.width, 3).copy()
    return DisplayBuffer(image.width, image.height, PixelFormat.RGB24, pixels)


def window_indices(image: RawImage, window: WindowLevel, invert: Optional[bool] = None) -> np.ndarray:
    """
    Windowed 8-bit value of every pixel of a monochrome image, shape (h, w).

    This is the palette index; changing palettes never changes it.
    *invert* defaults to the image's photometric interpretation.
    """
    if invert is None:
        invert = image.inverts
    view = image.sample_view()
    lut = lut_for_domain(window, view.domain, invert=invert)
    return apply_window_lut(view, lut).reshape(image.height, image.width)


def to_display(
    image: RawImage,
    window: WindowLevel,
    palette: PaletteTable,
    invert: Optional[bool] = None,
) -> DisplayBuffer:
    """
    Convert *image* to a display buffer under *window* and *palette*.

    Parameters
    ----------
    image : RawImage
        Decoded source image (borrowed, never modified).
    window : WindowLevel
        Window to apply to monochrome sources.  Ignored for RGB sources.
    palette : PaletteTable
        Grayscale gives GRAY8 output; any other palette gives RGB24.
        Ignored for RGB sources.
    invert : bool, optional
        Override the MONOCHROME1 inversion; by default it follows the
        image's photometric interpretation.

    Returns
    -------
    DisplayBuffer
        The converted frame, or ``DisplayBuffer.empty()`` if the image
        cannot be displayed.
    """
    reason = check_displayable(image)
    if reason is not None:
        logger.warning("Cannot convert image: %s", reason)
        return DisplayBuffer.empty()

    if image.is_rgb:
        return _convert_rgb(image)

    try:
        indices = window_indices(image, window, invert)
    except ValueError as exc:
        logger.warning("Cannot convert image: %s", exc)
        return DisplayBuffer.empty()

    if not palette.uses_color:
        return DisplayBuffer(image.width, image.height, PixelFormat.GRAY8, indices)

    return DisplayBuffer(image.width, image.height, PixelFormat.RGB24, palette.apply(indices))


def render_snapshot(
    image: RawImage,
    palette: PaletteKind = PaletteKind.GRAYSCALE,
    window: Optional[WindowLevel] = None,
) -> DisplayBuffer:
    """
    Render a static snapshot (thumbnail, export, print).

    Uses *window* when given, otherwise the image's current window.
    """
    if window is None:
        window = image.window.current
    return to_display(image, window, PaletteTable.for_kind(palette))
