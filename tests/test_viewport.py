"""Tests for wlengine/viewport.py."""

import numpy as np
import pytest

from wlengine.viewport import ViewTransform


def _apply(matrix: np.ndarray, x: float, y: float) -> tuple[float, float]:
    px, py, _ = matrix @ np.array([x, y, 1.0])
    return float(px), float(py)


class TestZoom:
    def test_steps(self):
        view = ViewTransform()
        assert view.zoom_in().zoom == pytest.approx(1.2)
        assert view.zoom_out().zoom == pytest.approx(1 / 1.2)
        assert view.zoom_in(2.0).zoom == pytest.approx(2.0)

    def test_clamped(self):
        view = ViewTransform()
        for _ in range(50):
            view = view.zoom_in()
        assert view.zoom == pytest.approx(8.0)
        for _ in range(100):
            view = view.zoom_out()
        assert view.zoom == pytest.approx(0.1)

    def test_wheel_recentres(self):
        view = ViewTransform(pan=(30.0, -10.0))
        up = view.wheel(120)
        assert up.zoom == pytest.approx(1.15)
        assert up.pan == (0.0, 0.0)
        assert view.wheel(-120).zoom == pytest.approx(1 / 1.15)
        assert view.wheel(0).zoom == 1.0

    def test_immutable(self):
        view = ViewTransform()
        view.zoom_in()
        assert view.zoom == 1.0


class TestRotation:
    def test_quarter_turns_wrap(self):
        view = ViewTransform()
        assert view.rotate_right().rotation == 90
        assert view.rotate_left().rotation == 270
        turned = view
        for _ in range(4):
            turned = turned.rotate_right()
        assert turned.rotation == 0

    def test_fit_scale_swaps_dimensions(self):
        assert ViewTransform().fit_scale((200, 100), (200, 100)) == pytest.approx(1.0)
        assert ViewTransform(rotation=90).fit_scale((200, 100), (200, 100)) == pytest.approx(0.5)


class TestMatrix:
    def test_identity_when_viewport_is_image(self):
        np.testing.assert_allclose(ViewTransform().matrix((64, 48)), np.eye(3), atol=1e-12)

    def test_image_centre_maps_to_viewport_centre_plus_pan(self):
        view = ViewTransform(zoom=2.0, pan=(5.0, -3.0), rotation=90)
        m = view.matrix((64, 48), (640, 480))
        assert _apply(m, 32, 24) == pytest.approx((325.0, 237.0))

    def test_fit_to_viewport(self):
        m = ViewTransform().matrix((100, 50), (400, 400))
        # width-limited: scale 4, so the image spans the full viewport width
        assert _apply(m, 0, 0) == pytest.approx((0.0, 100.0))
        assert _apply(m, 100, 50) == pytest.approx((400.0, 300.0))

    def test_rotate_right_turns_clockwise_on_screen(self):
        m = ViewTransform(rotation=90).matrix((10, 10))
        # top-left corner moves to the top-right
        assert _apply(m, 0, 0) == pytest.approx((10.0, 0.0))

    def test_reset(self):
        view = ViewTransform(zoom=3.0, pan=(1.0, 1.0), rotation=180)
        assert view.reset() == ViewTransform()
        assert view.fit() == ViewTransform(rotation=180)
