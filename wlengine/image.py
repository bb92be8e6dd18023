"""
image.py - The decoded image handed to the engine by an image source.

RawImage is built in one step from a fully-populated description and is
immutable afterwards, with one exception: its WindowLevelState, which the
user changes by dragging, moving sliders, picking presets or resetting.

Window width is expressed in stored-sample units.  Every mutator clamps it
to ``window.min_width`` (1.0 by default); a width <= 0 can only reach the
LUT builder directly, which then blanks the image instead of dividing by
zero.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Union

import numpy as np

from wlengine.config import CONFIG
from wlengine.samples import SampleDomain, SampleView


class PhotometricKind(Enum):
    """Photometric interpretation (0028,0004) of the stored samples."""

    MONOCHROME1 = "MONOCHROME1"
    MONOCHROME2 = "MONOCHROME2"
    RGB = "RGB"
    PALETTE_COLOR = "PALETTE COLOR"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_string(cls, text: Optional[str]) -> "PhotometricKind":
        """Parse a header value; blank or unrecognised values map to UNKNOWN."""
        if text is None:
            return cls.UNKNOWN
        value = str(text).strip().upper()
        for kind in cls:
            if kind.value == value and kind is not cls.UNKNOWN:
                return kind
        return cls.UNKNOWN

    @property
    def is_monochrome(self) -> bool:
        return self in (PhotometricKind.MONOCHROME1, PhotometricKind.MONOCHROME2)


@dataclass(frozen=True)
class WindowLevel:
    """A window centre (brightness) and width (contrast) pair."""
    center: float
    width: float

    def clamped(self, min_width: Optional[float] = None) -> "WindowLevel":
        """Return a copy whose width is at least *min_width*."""
        if min_width is None:
            min_width = CONFIG["window"]["min_width"]
        return WindowLevel(float(self.center), max(float(min_width), float(self.width)))

    @property
    def lower(self) -> float:
        return self.center - self.width / 2.0

    @property
    def upper(self) -> float:
        return self.center + self.width / 2.0


class WindowLevelState:
    """
    Default and current window of one image.

    The default comes from the image source (header values or the min/max
    of the samples).  The current window starts equal to the default and is
    the only mutable part of a RawImage.
    """

    def __init__(
        self,
        default: WindowLevel,
        min_width: Optional[float] = None,
        rescale_slope: float = 1.0,
        rescale_intercept: float = 0.0,
    ):
        self.min_width = float(min_width if min_width is not None else CONFIG["window"]["min_width"])
        self.rescale_slope = rescale_slope
        self.rescale_intercept = rescale_intercept
        self._default = default.clamped(self.min_width)
        self._current = self._default

    @property
    def default(self) -> WindowLevel:
        return self._default

    @property
    def current(self) -> WindowLevel:
        return self._current

    def set(self, window: WindowLevel) -> WindowLevel:
        self._current = window.clamped(self.min_width)
        return self._current

    def set_center(self, center: float) -> WindowLevel:
        return self.set(WindowLevel(center, self._current.width))

    def set_width(self, width: float) -> WindowLevel:
        return self.set(WindowLevel(self._current.center, width))

    def drag(
        self,
        dx: float,
        dy: float,
        width_sensitivity: Optional[float] = None,
        center_sensitivity: Optional[float] = None,
    ) -> WindowLevel:
        """
        Apply a mouse drag of (*dx*, *dy*) pixels.

        Horizontal movement widens/narrows the window; vertical movement
        moves the centre, inverted so that dragging up brightens.
        """
        sensitivity = CONFIG["window"]["drag_sensitivity"]
        if width_sensitivity is None:
            width_sensitivity = sensitivity["width"]
        if center_sensitivity is None:
            center_sensitivity = sensitivity["center"]
        return self.set(WindowLevel(
            self._current.center - dy * center_sensitivity,
            self._current.width + dx * width_sensitivity,
        ))

    def apply_preset(self, name: str) -> WindowLevel:
        """Apply a named preset; presets are in modality units (HU for CT)."""
        from wlengine.windowing import modality_to_stored, preset_window
        return self.set(modality_to_stored(
            preset_window(name), self.rescale_slope, self.rescale_intercept,
        ))

    def modality_window(self) -> WindowLevel:
        """Current window expressed in modality units, for display."""
        from wlengine.windowing import stored_to_modality
        return stored_to_modality(self._current, self.rescale_slope, self.rescale_intercept)

    def reset(self) -> WindowLevel:
        self._current = self._default
        return self._current

    def __repr__(self) -> str:
        return f"WindowLevelState(default={self._default}, current={self._current})"


@dataclass(frozen=True, eq=False)
class RawImage:
    """
    A decoded image: raw sample bytes plus the description needed to read them.

    Byte data is frozen into an immutable ``bytes`` object at construction.
    ``window`` is created from *default_window* and is the only state that
    changes afterwards.
    """
    width: int
    height: int
    bits_allocated: int
    is_signed: bool
    photometric: PhotometricKind
    data: bytes
    default_window: WindowLevel
    samples_per_pixel: int = 1
    bits_stored: Optional[int] = None
    high_bit: Optional[int] = None
    rescale_slope: float = 1.0
    rescale_intercept: float = 0.0
    metadata: Mapping[str, str] = field(default_factory=dict)
    window: WindowLevelState = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Image dimensions must be >= 0, got {self.width}x{self.height}."
            )
        if self.samples_per_pixel not in (1, 3):
            raise ValueError(
                f"Unsupported SamplesPerPixel={self.samples_per_pixel}; expected 1 or 3."
            )
        if not isinstance(self.data, bytes):
            object.__setattr__(self, "data", bytes(self.data))
        if self.bits_stored is None:
            object.__setattr__(self, "bits_stored", self.bits_allocated)
        if self.high_bit is None:
            object.__setattr__(self, "high_bit", self.bits_stored - 1)
        object.__setattr__(self, "metadata", dict(self.metadata))
        object.__setattr__(self, "window", WindowLevelState(
            self.default_window,
            rescale_slope=self.rescale_slope,
            rescale_intercept=self.rescale_intercept,
        ))

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_array(
        cls,
        array: np.ndarray,
        photometric: Union[PhotometricKind, str] = PhotometricKind.MONOCHROME2,
        default_window: Optional[WindowLevel] = None,
        **kwargs,
    ) -> "RawImage":
        """
        Build an image from a (rows, cols) or (rows, cols, 3) integer array.

        Bit depth and signedness come from the dtype (uint8, uint16, int16).
        Without *default_window* the min/max window of the data is used.
        """
        if isinstance(photometric, str):
            photometric = PhotometricKind.from_string(photometric)

        arr = np.asarray(array)
        if arr.dtype == np.uint8:
            bits, signed = 8, False
        elif arr.dtype == np.uint16:
            bits, signed = 16, False
        elif arr.dtype == np.int16:
            bits, signed = 16, True
        else:
            raise ValueError(
                f"Unsupported pixel dtype {arr.dtype}; expected uint8, uint16 or int16."
            )

        if arr.ndim == 3 and arr.shape[2] == 3:
            samples_per_pixel = 3
        elif arr.ndim == 2:
            samples_per_pixel = 1
        else:
            raise ValueError(
                f"Expected a (rows, cols) or (rows, cols, 3) array, got shape {arr.shape}."
            )

        if default_window is None:
            from wlengine.windowing import min_max_window
            default_window = min_max_window(arr)

        height, width = arr.shape[:2]
        data = np.ascontiguousarray(arr, dtype=arr.dtype.newbyteorder("<")).tobytes()
        return cls(
            width=width,
            height=height,
            bits_allocated=bits,
            is_signed=signed,
            photometric=photometric,
            data=data,
            default_window=default_window,
            samples_per_pixel=samples_per_pixel,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Derived properties
    # ------------------------------------------------------------------

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def expected_byte_length(self) -> int:
        return SampleView.required_bytes(self.pixel_count, self.bits_allocated, self.samples_per_pixel)

    @property
    def is_valid(self) -> bool:
        """True when the image has data, non-zero dimensions and a known kind."""
        return (
            len(self.data) > 0
            and self.width > 0
            and self.height > 0
            and self.photometric is not PhotometricKind.UNKNOWN
        )

    @property
    def is_rgb(self) -> bool:
        return self.samples_per_pixel == 3

    @property
    def inverts(self) -> bool:
        """
        True when high stored values display dark.

        MONOCHROME1 stores low values as white.  A negative rescale slope
        reverses the stored axis against modality units, so it flips the
        mapping again.
        """
        return (self.photometric is PhotometricKind.MONOCHROME1) != (self.rescale_slope < 0)

    @property
    def domain(self) -> SampleDomain:
        return SampleDomain.resolve(self.bits_allocated, self.is_signed)

    def sample_view(self) -> SampleView:
        """Zero-copy view of the samples; raises ValueError if undersized."""
        return SampleView(
            self.data,
            self.pixel_count,
            self.bits_allocated,
            is_signed=self.is_signed,
            samples_per_pixel=self.samples_per_pixel,
        )
