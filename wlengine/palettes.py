"""
palettes.py - Pseudo-colour palettes applied after windowing.

Each palette maps the 8-bit windowed grey value to an RGB triple through a
fixed 256-entry table.  The tables are generated from pure per-index
functions (no randomness, no external state), so generating a palette twice
always gives the same bytes.  Generated tables are cached and handed out
read-only.

Channel values are truncated toward zero when converted to 8 bits, the
same integer-cast rule used by the window/level LUT.

The catalog order below is part of the public contract: UIs list palettes
in this order and cyclic selection walks it.
"""

import logging
import math
from enum import Enum
from functools import lru_cache
from typing import Callable

import numpy as np

logger = logging.getLogger(__name__)

RGB = tuple[int, int, int]


class PaletteKind(Enum):
    """Built-in palettes, in catalog order."""

    GRAYSCALE = "Grayscale"
    INVERTED = "Inverted"
    HOT = "Hot (Thermal)"
    COOL = "Cool"
    RAINBOW = "Rainbow"
    BONE = "Bone"
    COPPER = "Copper"
    OCEAN = "Ocean"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def uses_color(self) -> bool:
        """Everything except Grayscale renders through the RGB path."""
        return self is not PaletteKind.GRAYSCALE

    @classmethod
    def from_name(cls, name: str) -> "PaletteKind":
        """Resolve an enum name ('hot') or display name ('Hot (Thermal)')."""
        text = str(name).strip()
        for kind in cls:
            if text.upper() == kind.name or text.lower() == kind.value.lower():
                return kind
        raise ValueError(
            f"Unknown palette '{name}'. "
            f"Choose from: {[k.name.lower() for k in cls]}"
        )


def _u8(value: float) -> int:
    return int(value)


# ---------------------------------------------------------------------------
# Generators: index 0..255 -> (r, g, b)
# ---------------------------------------------------------------------------

def _grayscale(i: int) -> RGB:
    return i, i, i


def _inverted(i: int) -> RGB:
    v = 255 - i
    return v, v, v


def _hot(i: int) -> RGB:
    """Black -> red -> yellow -> white, with hard knees at 3/8 and 3/4."""
    t = i / 255.0
    r = _u8(t / 0.375 * 255) if t < 0.375 else 255
    if t < 0.375:
        g = 0
    elif t < 0.75:
        g = _u8((t - 0.375) / 0.375 * 255)
    else:
        g = 255
    b = 0 if t < 0.75 else _u8((t - 0.75) / 0.25 * 255)
    return r, g, b


def _cool(i: int) -> RGB:
    t = i / 255.0
    return _u8(t * 255), _u8((1.0 - t) * 255), 255


def _rainbow(i: int) -> RGB:
    """HSV hue sweep 0..300 degrees (red to magenta), full saturation and value."""
    t = i / 255.0
    hue = t * 300.0
    c = 1.0
    x = c * (1.0 - abs(math.fmod(hue / 60.0, 2.0) - 1.0))
    if hue < 60:
        r, g, b = c, x, 0.0
    elif hue < 120:
        r, g, b = x, c, 0.0
    elif hue < 180:
        r, g, b = 0.0, c, x
    elif hue < 240:
        r, g, b = 0.0, x, c
    else:
        r, g, b = x, 0.0, c
    return _u8(r * 255), _u8(g * 255), _u8(b * 255)


def _bone(i: int) -> RGB:
    """Grey ramp with a slight blue cast in the shadows."""
    t = i / 255.0
    rg = _u8(min(255.0, t * 255 * 0.9 + t * t * 25.5))
    b = _u8(min(255.0, t * 255 * 1.0))
    return rg, rg, b


def _copper(i: int) -> RGB:
    t = i / 255.0
    return (
        _u8(min(255.0, t * 1.25 * 255)),
        _u8(t * 0.7812 * 255),
        _u8(t * 0.4975 * 255),
    )


def _ocean(i: int) -> RGB:
    t = i / 255.0
    return _u8(t * t * 255), _u8(t * 255), _u8((0.4 + 0.6 * t) * 255)


_GENERATORS: dict[PaletteKind, Callable[[int], RGB]] = {
    PaletteKind.GRAYSCALE: _grayscale,
    PaletteKind.INVERTED: _inverted,
    PaletteKind.HOT: _hot,
    PaletteKind.COOL: _cool,
    PaletteKind.RAINBOW: _rainbow,
    PaletteKind.BONE: _bone,
    PaletteKind.COPPER: _copper,
    PaletteKind.OCEAN: _ocean,
}


def generate_palette(kind: PaletteKind) -> np.ndarray:
    """Generate a fresh, writeable (256, 3) uint8 table for *kind*."""
    generator = _GENERATORS[kind]
    return np.array([generator(i) for i in range(256)], dtype=np.uint8)


@lru_cache(maxsize=None)
def _cached_table(kind: PaletteKind) -> np.ndarray:
    table = generate_palette(kind)
    table.flags.writeable = False
    logger.debug("Generated %s palette", kind.display_name)
    return table


class PaletteTable:
    """A 256-entry grey -> RGB lookup table."""

    def __init__(self, kind: PaletteKind = PaletteKind.GRAYSCALE):
        self.kind = kind
        self.table = _cached_table(kind)

    @classmethod
    def for_kind(cls, kind: PaletteKind) -> "PaletteTable":
        return cls(kind)

    @property
    def uses_color(self) -> bool:
        return self.kind.uses_color

    @property
    def name(self) -> str:
        return self.kind.display_name

    def map_rgb(self, gray: int) -> RGB:
        if not 0 <= gray <= 255:
            raise ValueError(f"Grey value must be in [0, 255], got {gray}.")
        r, g, b = self.table[gray]
        return int(r), int(g), int(b)

    def apply(self, indices: np.ndarray) -> np.ndarray:
        """Map uint8 *indices* of any shape to RGB; output shape is indices.shape + (3,)."""
        return self.table[np.asarray(indices, dtype=np.uint8)]

    def __eq__(self, other) -> bool:
        return isinstance(other, PaletteTable) and other.kind is self.kind

    def __hash__(self) -> int:
        return hash(self.kind)

    def __repr__(self) -> str:
        return f"PaletteTable({self.kind.name})"


def palette_catalog() -> list[tuple[PaletteKind, str]]:
    """All palettes as (kind, display name) pairs, in catalog order."""
    return [(kind, kind.display_name) for kind in PaletteKind]


def next_palette(kind: PaletteKind, step: int = 1) -> PaletteKind:
    """Cycle through the catalog; negative *step* walks backwards."""
    kinds = list(PaletteKind)
    return kinds[(kinds.index(kind) + step) % len(kinds)]
