"""Tests for wlengine/visualization.py."""

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest

from wlengine.converter import DisplayBuffer, PixelFormat, render_snapshot
from wlengine.palettes import PaletteKind
from wlengine.visualization import (
    plot_display_buffer,
    plot_palette_catalog,
    plot_palette_comparison,
    plot_preset_comparison,
    save_display_buffer,
)


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close("all")


class TestPlots:
    def test_display_buffer(self, ct_image):
        fig = plot_display_buffer(render_snapshot(ct_image), title="CT")
        assert isinstance(fig, plt.Figure)
        assert fig.axes[0].get_title() == "CT"

    def test_empty_buffer(self):
        fig = plot_display_buffer(DisplayBuffer.empty())
        assert isinstance(fig, plt.Figure)

    def test_palette_catalog_has_one_bar_per_palette(self):
        fig = plot_palette_catalog()
        assert len(fig.axes) == len(PaletteKind)

    def test_preset_comparison_leaves_window_alone(self, ct_image):
        before = ct_image.window.current
        fig = plot_preset_comparison(ct_image, PaletteKind.HOT)
        assert len(fig.axes) == 4
        assert ct_image.window.current == before

    def test_palette_comparison(self, ct_image):
        fig = plot_palette_comparison(ct_image)
        titles = [ax.get_title() for ax in fig.axes]
        assert "Hot (Thermal)" in titles


class TestSave:
    def test_writes_gray_and_rgb(self, ct_image, tmp_path):
        gray = save_display_buffer(render_snapshot(ct_image), str(tmp_path / "gray.png"))
        rgb = save_display_buffer(
            render_snapshot(ct_image, PaletteKind.RAINBOW), str(tmp_path / "out" / "rgb.png"),
        )
        assert (tmp_path / "gray.png").stat().st_size > 0
        assert (tmp_path / "out" / "rgb.png").exists()
        assert gray.endswith("gray.png") and rgb.endswith("rgb.png")

    def test_saved_pixels_round_trip(self, tmp_path):
        pixels = np.array([[[255, 0, 0], [0, 255, 0]]], dtype=np.uint8)
        buffer = DisplayBuffer(2, 1, PixelFormat.RGB24, pixels)
        path = save_display_buffer(buffer, str(tmp_path / "tiny.png"))
        read = (plt.imread(path)[..., :3] * 255).round().astype(np.uint8)
        np.testing.assert_array_equal(read, pixels)

    def test_empty_raises(self, tmp_path):
        with pytest.raises(ValueError, match="empty"):
            save_display_buffer(DisplayBuffer.empty(), str(tmp_path / "x.png"))
