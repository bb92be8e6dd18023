"""Shared fixtures: a scalar window/level oracle and synthetic images."""

import math

import numpy as np
import pytest

from wlengine.image import PhotometricKind, RawImage, WindowLevel


def reference_window(value: float, center: float, width: float, invert: bool = False) -> int:
    """Plain-Python evaluation of the window/level mapping for one value."""
    if width <= 0:
        return 0
    lower = center - width / 2.0
    upper = center + width / 2.0
    if value <= lower:
        out = 0
    elif value >= upper:
        out = 255
    else:
        out = min(255, max(0, math.floor((value - lower) * (255.0 / width))))
    return 255 - out if invert else out


def reference_frame(pixels: np.ndarray, center: float, width: float, invert: bool = False) -> np.ndarray:
    """Oracle applied to every element of *pixels*, as uint8."""
    flat = [reference_window(int(v), center, width, invert) for v in np.ravel(pixels)]
    return np.array(flat, dtype=np.uint8).reshape(pixels.shape)


@pytest.fixture
def window_oracle():
    return reference_window


@pytest.fixture
def frame_oracle():
    return reference_frame


@pytest.fixture
def ct_image() -> RawImage:
    """16-bit unsigned ramp with a soft-tissue window (stored = HU + 1024)."""
    pixels = np.linspace(0, 4095, 64 * 48).astype(np.uint16).reshape(48, 64)
    return RawImage.from_array(
        pixels,
        default_window=WindowLevel(1064.0, 400.0),
        rescale_intercept=-1024.0,
    )


@pytest.fixture
def signed_image() -> RawImage:
    rng = np.random.default_rng(7)
    pixels = rng.integers(-32768, 32767, size=(16, 20), endpoint=True).astype(np.int16)
    return RawImage.from_array(pixels, default_window=WindowLevel(-200.0, 3000.0))


@pytest.fixture
def mono1_image() -> RawImage:
    pixels = np.arange(256, dtype=np.uint8).reshape(16, 16)
    return RawImage.from_array(
        pixels,
        photometric=PhotometricKind.MONOCHROME1,
        default_window=WindowLevel(128.0, 256.0),
    )


@pytest.fixture
def rgb_image() -> RawImage:
    rng = np.random.default_rng(11)
    pixels = rng.integers(0, 255, size=(10, 12, 3), endpoint=True).astype(np.uint8)
    return RawImage.from_array(pixels, photometric=PhotometricKind.RGB)
