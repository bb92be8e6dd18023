"""
windowing.py - Window/level lookup tables.

WHY THIS MATTERS
----------------
Stored CT/MR/CR samples span up to 65536 distinct values, but a display
shows 256 grey levels.  Radiologists look at images through a *window*: a
centre and width that maps a clinically relevant range of stored values to
the full 0-255 display range.  Showing the wrong window makes anatomy
invisible.

The mapping for a stored value v is:

    lower = center - width / 2
    upper = center + width / 2
    v <= lower  ->   0
    v >= upper  -> 255
    otherwise   -> floor((v - lower) * 255 / width)

MONOCHROME1 images are inverted *after* that clamp (255 - value), so the
saturated extremes swap rather than being clamped again.

Because the sample domain is at most 16 bits wide, the mapping is
precomputed once per (window, domain, invert) into a table indexed by
``value - domain_min``.  The realtime renderer evaluates the same formula
per pixel; both must agree bit for bit.

References
----------
- DICOM PS3.3, attribute (0028,1050)/(0028,1051): WindowCenter/WindowWidth
- DICOM PS3.3, C.7.6.3.1.2: Photometric Interpretation (MONOCHROME1)
"""

import logging
from typing import Optional

import numpy as np

from wlengine.config import CONFIG
from wlengine.image import WindowLevel
from wlengine.samples import SampleDomain, SampleView

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Window presets (centre, width) commonly used in radiology
# ---------------------------------------------------------------------------
WINDOW_PRESETS: dict[str, tuple[float, float]] = {
    "brain": (40.0, 80.0),
    "bone": (400.0, 1800.0),
    "lung": (-600.0, 1500.0),
    "soft_tissue": (50.0, 400.0),
}


def preset_window(name: str) -> WindowLevel:
    """
    Look up a named preset.

    Raises
    ------
    ValueError
        If *name* is not one of WINDOW_PRESETS.
    """
    if name not in WINDOW_PRESETS:
        raise ValueError(
            f"Unknown preset '{name}'. "
            f"Choose from: {list(WINDOW_PRESETS.keys())}"
        )
    center, width = WINDOW_PRESETS[name]
    return WindowLevel(center, width)


def build_window_lut(
    center: float,
    width: float,
    domain_min: int,
    domain_max: int,
    invert: bool = False,
) -> np.ndarray:
    """
    Build the window/level table for every value in [domain_min, domain_max].

    Parameters
    ----------
    center : float
        Window centre in stored-value units.
    width : float
        Window width.  ``width <= 0`` produces an all-zero (blank) table.
    domain_min, domain_max : int
        Inclusive range of stored values.  Swapped if given in reverse.
    invert : bool
        Replace each entry by ``255 - entry`` (MONOCHROME1).

    Returns
    -------
    np.ndarray
        uint8 array of length ``domain_max - domain_min + 1``; entry ``i``
        is the display value of stored value ``domain_min + i``.
    """
    if domain_max < domain_min:
        domain_min, domain_max = domain_max, domain_min

    size = domain_max - domain_min + 1
    if width <= 0:
        logger.debug("Blank LUT: width=%s <= 0", width)
        return np.zeros(size, dtype=np.uint8)

    lower = center - width / 2.0
    upper = center + width / 2.0
    scale = 255.0 / width

    raw = np.arange(domain_min, domain_max + 1, dtype=np.float64)
    ramp = np.floor((raw - lower) * scale)
    lut = np.where(raw <= lower, 0.0, np.where(raw >= upper, 255.0, ramp))
    lut = np.clip(lut, 0.0, 255.0).astype(np.uint8)

    if invert:
        lut = 255 - lut

    logger.debug(
        "Built LUT: centre=%.1f, width=%.1f, domain=[%d, %d], invert=%s",
        center, width, domain_min, domain_max, invert,
    )
    return lut


def lut_for_domain(window: WindowLevel, domain: SampleDomain, invert: bool = False) -> np.ndarray:
    """Build the table covering the whole of *domain*."""
    return build_window_lut(window.center, window.width, domain.minimum, domain.maximum, invert)


def apply_window_lut(view: SampleView, lut: np.ndarray) -> np.ndarray:
    """
    Map every sample of a single-sample-per-pixel view through *lut*.

    Returns a flat uint8 array with one entry per pixel.
    """
    if view.is_rgb:
        raise ValueError("Window/level does not apply to RGB samples.")
    return lut[view.offsets()]


def min_max_window(samples: np.ndarray, min_width: Optional[float] = None) -> WindowLevel:
    """
    Window spanning the full range of *samples*.

    ``center = (min + max) / 2`` and ``width = max - min``, never narrower
    than ``window.min_width``.  Used when the header carries no window.
    """
    if min_width is None:
        min_width = CONFIG["window"]["min_width"]

    values = np.asarray(samples)
    if values.size == 0:
        fallback = CONFIG["window"]["fallback"]
        logger.warning("No samples to derive a window from; using fallback window.")
        return WindowLevel(float(fallback["center"]), float(fallback["width"]))

    lo = float(values.min())
    hi = float(values.max())
    return WindowLevel((lo + hi) / 2.0, max(float(min_width), hi - lo))


# ---------------------------------------------------------------------------
# Modality units
# ---------------------------------------------------------------------------
# Header windows and presets are expressed after the modality rescale
# (output = stored * slope + intercept, HU for CT).  The engine windows the
# stored samples, so those values are mapped back before use.

def modality_to_stored(window: WindowLevel, slope: float = 1.0, intercept: float = 0.0) -> WindowLevel:
    """Convert a window from modality units to stored-value units."""
    if slope == 0:
        raise ValueError("Rescale slope must be non-zero.")
    return WindowLevel((window.center - intercept) / slope, window.width / abs(slope))


def stored_to_modality(window: WindowLevel, slope: float = 1.0, intercept: float = 0.0) -> WindowLevel:
    """Convert a window from stored-value units to modality units."""
    return WindowLevel(window.center * slope + intercept, window.width * abs(slope))
