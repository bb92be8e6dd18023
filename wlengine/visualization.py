"""
visualization.py - Consolidated matplotlib plotting helpers.

All plot functions follow a consistent style and return the Figure so
callers can save or display it as needed.  They draw DisplayBuffers that
were already windowed by the engine, so matplotlib never rescales them.
"""

import logging
import os

import matplotlib.pyplot as plt
import numpy as np

from wlengine.converter import DisplayBuffer, PixelFormat, render_snapshot
from wlengine.image import RawImage
from wlengine.palettes import PaletteKind, PaletteTable, palette_catalog
from wlengine.windowing import WINDOW_PRESETS, modality_to_stored, preset_window

logger = logging.getLogger(__name__)

# Consistent figure style across all plots
plt.rcParams.update({"figure.dpi": 100, "axes.titlesize": 11})


def _show(ax, buffer: DisplayBuffer) -> None:
    if buffer.format is PixelFormat.GRAY8:
        ax.imshow(buffer.pixels, cmap="gray", vmin=0, vmax=255, interpolation="nearest")
    else:
        ax.imshow(buffer.pixels, interpolation="nearest")
    ax.axis("off")


def plot_display_buffer(buffer: DisplayBuffer, title: str = "Display buffer") -> plt.Figure:
    """
    Display one converted frame.

    Parameters
    ----------
    buffer : DisplayBuffer
        GRAY8 or RGB24 output of the converter or renderer.
    title : str
        Plot title.

    Returns
    -------
    plt.Figure
    """
    fig, ax = plt.subplots(figsize=(6, 6))
    if buffer.is_empty:
        ax.text(0.5, 0.5, "(empty)", ha="center", va="center")
        ax.axis("off")
    else:
        _show(ax, buffer)
    ax.set_title(title)
    return fig


def plot_palette_catalog() -> plt.Figure:
    """
    Draw every built-in palette as a horizontal colour bar, in catalog order.

    Returns
    -------
    plt.Figure
    """
    catalog = palette_catalog()
    fig, axes = plt.subplots(len(catalog), 1, figsize=(6, 0.5 * len(catalog) + 0.5))

    ramp = np.arange(256, dtype=np.uint8).reshape(1, 256)
    for ax, (kind, name) in zip(axes, catalog):
        bar = PaletteTable.for_kind(kind).apply(ramp)
        ax.imshow(bar, aspect="auto", interpolation="nearest")
        ax.set_yticks([])
        ax.set_xticks([])
        ax.set_ylabel(name, rotation=0, ha="right", va="center", fontsize=9)

    fig.suptitle("Palettes")
    fig.tight_layout()
    return fig


def plot_preset_comparison(
    image: RawImage,
    palette: PaletteKind = PaletteKind.GRAYSCALE,
) -> plt.Figure:
    """
    Show the same image through each standard window preset side by side.

    The image's own current window is left untouched.

    Parameters
    ----------
    image : RawImage
        Monochrome source image.
    palette : PaletteKind
        Palette applied after windowing.

    Returns
    -------
    plt.Figure
    """
    presets = list(WINDOW_PRESETS.keys())
    fig, axes = plt.subplots(1, len(presets), figsize=(4 * len(presets), 4))

    for ax, preset in zip(axes, presets):
        window = modality_to_stored(
            preset_window(preset), image.rescale_slope, image.rescale_intercept,
        )
        _show(ax, render_snapshot(image, palette, window))
        center, width = WINDOW_PRESETS[preset]
        ax.set_title(f"{preset.replace('_', ' ').title()}\n(C={center}, W={width})")

    fig.suptitle(f"Windowed Views ({palette.display_name})", y=1.02)
    fig.tight_layout()
    return fig


def plot_palette_comparison(image: RawImage) -> plt.Figure:
    """Show the image at its current window through every palette."""
    catalog = palette_catalog()
    cols = 4
    rows = (len(catalog) + cols - 1) // cols
    fig, axes = plt.subplots(rows, cols, figsize=(3 * cols, 3 * rows))

    for ax, (kind, name) in zip(np.ravel(axes), catalog):
        _show(ax, render_snapshot(image, kind))
        ax.set_title(name)

    fig.tight_layout()
    return fig


def save_display_buffer(buffer: DisplayBuffer, path: str) -> str:
    """
    Write *buffer* to an image file (format from the extension).

    Returns
    -------
    str
        The path written.

    Raises
    ------
    ValueError
        If the buffer is empty.
    """
    if buffer.is_empty:
        raise ValueError("Cannot save an empty display buffer.")
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    if buffer.format is PixelFormat.GRAY8:
        plt.imsave(path, buffer.pixels, cmap="gray", vmin=0, vmax=255)
    else:
        plt.imsave(path, buffer.pixels)
    logger.info("Saved %dx%d %s frame to %s", buffer.width, buffer.height, buffer.format.name, path)
    return path
