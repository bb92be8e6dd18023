"""Tests for wlengine/session.py."""

import logging

import pytest

from wlengine.converter import render_snapshot
from wlengine.image import WindowLevel
from wlengine.palettes import PaletteKind
from wlengine.renderer import RealtimeRenderer
from wlengine.session import ViewerSession, WindowUpdate


class CountingRenderer(RealtimeRenderer):
    def __init__(self):
        super().__init__(prefer_gpu=False)
        self.renders = 0
        self.released = False

    def render(self, params):
        self.renders += 1
        return super().render(params)

    def release(self):
        self.released = True
        super().release()


@pytest.fixture
def renderer():
    return CountingRenderer()


class TestWindowUpdates:
    def test_updates_wait_for_frame(self, ct_image, renderer):
        session = ViewerSession(ct_image, renderer=renderer)
        session.set_window(500, 100)
        assert session.pending == 1
        assert ct_image.window.current == WindowLevel(1064.0, 400.0)

    def test_applied_in_arrival_order(self, ct_image, renderer):
        session = ViewerSession(ct_image, renderer=renderer)
        session.set_window(500, 100)
        session.drag(10, 5)
        session.set_center(300)
        session.drag(-20, 0)
        assert session.window == WindowLevel(300.0, 90.0)
        assert session.pending == 0

    def test_set_after_drag_wins(self, ct_image, renderer):
        session = ViewerSession(ct_image, renderer=renderer)
        session.drag(10, 5)
        session.set_window(500, 100)
        assert session.window == WindowLevel(500.0, 100.0)

    def test_burst_renders_once(self, ct_image, renderer):
        session = ViewerSession(ct_image, renderer=renderer)
        for _ in range(25):
            session.drag(4, -2)
        frame = session.frame()
        assert renderer.renders == 1
        assert session.window == WindowLevel(1114.0, 500.0)
        assert frame.buffer == render_snapshot(ct_image, PaletteKind.GRAYSCALE, WindowLevel(1114.0, 500.0))

    def test_preset_and_reset(self, ct_image, renderer):
        session = ViewerSession(ct_image, renderer=renderer)
        session.apply_preset("bone")
        assert session.window == WindowLevel(1424.0, 1800.0)
        session.set_width(3)
        session.reset_window()
        assert session.window == WindowLevel(1064.0, 400.0)

    def test_unknown_preset_raises_at_call_site(self, ct_image, renderer):
        session = ViewerSession(ct_image, renderer=renderer)
        with pytest.raises(ValueError, match="Unknown preset"):
            session.apply_preset("nope")
        assert session.pending == 0
        session.drag(10, 0)
        frame = session.frame()
        assert session.pending == 0
        assert session.window == WindowLevel(1064.0, 410.0)
        assert frame.buffer == render_snapshot(ct_image, PaletteKind.GRAYSCALE, WindowLevel(1064.0, 410.0))

    def test_failing_update_is_skipped(self, ct_image, renderer, caplog):
        session = ViewerSession(ct_image, renderer=renderer)
        session.submit(WindowUpdate.named_preset("nope"))
        session.drag(10, 0)
        with caplog.at_level(logging.WARNING, logger="wlengine.session"):
            session.frame()
        assert session.pending == 0
        assert session.window == WindowLevel(1064.0, 410.0)
        assert "Skipping window update" in caplog.text

    def test_unknown_action(self, ct_image):
        with pytest.raises(ValueError, match="Unknown window update"):
            WindowUpdate("spin").apply_to(ct_image)


class TestFrames:
    def test_unchanged_state_reuses_frame(self, ct_image, renderer):
        session = ViewerSession(ct_image, renderer=renderer)
        first = session.frame()
        assert session.frame() is first
        assert renderer.renders == 1

    def test_palette_change_rerenders(self, ct_image, renderer):
        session = ViewerSession(ct_image, renderer=renderer)
        gray = session.frame()
        session.set_palette(PaletteKind.HOT)
        hot = session.frame()
        assert renderer.renders == 2
        assert hot is not gray
        assert hot.buffer == render_snapshot(ct_image, PaletteKind.HOT)

    def test_view_change_rerenders(self, ct_image, renderer):
        session = ViewerSession(ct_image, renderer=renderer, viewport_size=(256, 256))
        session.frame()
        session.rotate_right()
        frame = session.frame()
        assert renderer.renders == 2
        assert session.view.rotation == 90
        assert frame.matrix.shape == (3, 3)

    def test_cycle_palette(self, ct_image, renderer):
        session = ViewerSession(ct_image, renderer=renderer)
        assert session.palette is PaletteKind.GRAYSCALE
        assert session.cycle_palette() is PaletteKind.INVERTED
        assert session.cycle_palette(-2) is PaletteKind.OCEAN
        assert renderer.palette is PaletteKind.OCEAN

    def test_view_operations(self, ct_image, renderer):
        session = ViewerSession(ct_image, renderer=renderer)
        session.zoom_in()
        session.pan(3, 4)
        session.rotate_left()
        assert session.view.pan == (3.0, 4.0)
        assert session.view.rotation == 270
        session.wheel(-1)
        assert session.view.pan == (0.0, 0.0)
        session.reset_view()
        assert session.view.zoom == 1.0

    def test_snapshot_matches_converter(self, mono1_image, renderer):
        session = ViewerSession(mono1_image, renderer=renderer, palette=PaletteKind.BONE)
        session.set_window(100, 50)
        assert session.snapshot() == render_snapshot(mono1_image, PaletteKind.BONE, WindowLevel(100, 50))


class TestLifecycle:
    def test_owned_renderer_is_released(self, ct_image, monkeypatch):
        monkeypatch.setattr("wlengine.session.RealtimeRenderer", CountingRenderer)
        session = ViewerSession(ct_image)
        owned = session._renderer
        session.close()
        assert owned.released

    def test_shared_renderer_is_only_unloaded(self, ct_image, renderer):
        session = ViewerSession(ct_image, renderer=renderer)
        session.drag(1, 1)
        session.close()
        assert not renderer.released
        assert renderer.image is None
        assert session.pending == 0
