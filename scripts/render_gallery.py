"""
render_gallery.py - End-to-end rendering demonstration.

Generates synthetic DICOM data (if data/raw is empty), loads every file
through the pydicom adapter, renders each one through the realtime renderer
(GPU when available, CPU otherwise), simulates a short mouse drag, and saves
snapshots plus preset and palette comparisons to reports/.

Usage
-----
    python scripts/render_gallery.py

To use your own data instead of generated samples, copy your DICOM files
into data/raw/ first.
"""

import logging
import os
import sys

# Ensure repo root is on sys.path regardless of launch directory
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _REPO_ROOT)

import matplotlib
matplotlib.use("Agg")  # non-interactive backend, works without a display

import matplotlib.pyplot as plt

from wlengine.config import CONFIG
from wlengine.palettes import PaletteKind
from wlengine.renderer import RealtimeRenderer
from wlengine.session import ViewerSession
from wlengine.source import load_folder
from wlengine.visualization import (
    plot_palette_catalog,
    plot_palette_comparison,
    plot_preset_comparison,
    save_display_buffer,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)-8s %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
INPUT_FOLDER = os.path.join(_REPO_ROOT, CONFIG["paths"]["input_folder"])
REPORTS_FOLDER = os.path.join(_REPO_ROOT, CONFIG["paths"]["output_folder"])


def _ensure_sample_data() -> None:
    """Generate synthetic data if data/raw/ has no .dcm files."""
    os.makedirs(INPUT_FOLDER, exist_ok=True)
    dcm_files = [f for f in os.listdir(INPUT_FOLDER) if f.endswith(".dcm")]
    if dcm_files:
        logger.info("Found %d DICOM file(s) in %s, skipping generation.", len(dcm_files), INPUT_FOLDER)
        return

    logger.info("No DICOM files in %s, generating samples.", INPUT_FOLDER)
    from scripts.generate_sample_data import generate  # noqa: E402 - lazy import
    generate(INPUT_FOLDER)


def _save_figure(fig, name: str) -> None:
    path = os.path.join(REPORTS_FOLDER, name)
    fig.savefig(path, dpi=100, bbox_inches="tight")
    plt.close(fig)
    print(f"  Saved: {path}")


def main() -> None:
    os.makedirs(REPORTS_FOLDER, exist_ok=True)

    # -- Step 1: Load images ------------------------------------------------
    print("=" * 60)
    print("STEP 1 - Load images")
    print("=" * 60)
    _ensure_sample_data()
    images = load_folder(INPUT_FOLDER)
    for image in images:
        print(
            f"  {image.metadata.get('SourceFile', '?'):<16} "
            f"{image.width}x{image.height}  {image.bits_allocated}-bit "
            f"{image.photometric.value:<12} default window {image.window.default}"
        )
    print()

    # -- Step 2: Interactive rendering --------------------------------------
    print("=" * 60)
    print("STEP 2 - Realtime rendering with a simulated drag")
    print("=" * 60)
    with RealtimeRenderer() as renderer:
        print(f"  Backend: {renderer.backend_name}")
        for image in images:
            name = os.path.splitext(image.metadata.get("SourceFile", "image"))[0]
            session = ViewerSession(image, renderer=renderer, viewport_size=(512, 512))

            save_display_buffer(
                session.frame().buffer,
                os.path.join(REPORTS_FOLDER, f"{name}_default.png"),
            )

            # A drag arrives as many small motion events; only the last state is drawn
            for _ in range(20):
                session.drag(10, -5)
            session.set_palette(PaletteKind.HOT)
            frame = session.frame()
            print(f"  {name:<16} after drag: {session.window}  ({frame.backend})")
            save_display_buffer(frame.buffer, os.path.join(REPORTS_FOLDER, f"{name}_dragged_hot.png"))
            session.close()
    print()

    # -- Step 3: Comparison plots -------------------------------------------
    print("=" * 60)
    print("STEP 3 - Saving comparisons to reports/")
    print("=" * 60)
    _save_figure(plot_palette_catalog(), "palette_catalog.png")
    monochrome = [image for image in images if image.photometric.is_monochrome]
    if monochrome:
        first = monochrome[0]
        first.window.reset()
        _save_figure(plot_preset_comparison(first), "preset_comparison.png")
        _save_figure(plot_palette_comparison(first), "palette_comparison.png")
    print()

    print("=" * 60)
    print("GALLERY COMPLETE")
    print("=" * 60)
    print(f"  Images rendered : {len(images)}")
    print(f"  Output          : {REPORTS_FOLDER}")


if __name__ == "__main__":
    main()
