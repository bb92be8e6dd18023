"""Tests for wlengine/palettes.py."""

import numpy as np
import pytest

from wlengine.palettes import (
    PaletteKind,
    PaletteTable,
    generate_palette,
    next_palette,
    palette_catalog,
)


class TestCatalog:
    def test_fixed_order_and_names(self):
        assert palette_catalog() == [
            (PaletteKind.GRAYSCALE, "Grayscale"),
            (PaletteKind.INVERTED, "Inverted"),
            (PaletteKind.HOT, "Hot (Thermal)"),
            (PaletteKind.COOL, "Cool"),
            (PaletteKind.RAINBOW, "Rainbow"),
            (PaletteKind.BONE, "Bone"),
            (PaletteKind.COPPER, "Copper"),
            (PaletteKind.OCEAN, "Ocean"),
        ]

    def test_cycle_wraps(self):
        assert next_palette(PaletteKind.OCEAN) is PaletteKind.GRAYSCALE
        assert next_palette(PaletteKind.GRAYSCALE, -1) is PaletteKind.OCEAN
        assert next_palette(PaletteKind.HOT, 2) is PaletteKind.RAINBOW

    @pytest.mark.parametrize("text, expected", [
        ("hot", PaletteKind.HOT),
        ("HOT", PaletteKind.HOT),
        ("Hot (Thermal)", PaletteKind.HOT),
        (" grayscale ", PaletteKind.GRAYSCALE),
    ])
    def test_from_name(self, text, expected):
        assert PaletteKind.from_name(text) is expected

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError, match="Unknown palette"):
            PaletteKind.from_name("viridis")

    def test_only_grayscale_skips_color(self):
        assert [k for k in PaletteKind if not k.uses_color] == [PaletteKind.GRAYSCALE]


class TestGenerators:
    @pytest.mark.parametrize("kind", list(PaletteKind))
    def test_generation_is_reproducible(self, kind):
        first = generate_palette(kind)
        second = generate_palette(kind)
        assert first.shape == (256, 3)
        assert first.dtype == np.uint8
        assert first.tobytes() == second.tobytes()

    def test_grayscale_is_identity(self):
        table = generate_palette(PaletteKind.GRAYSCALE)
        ramp = np.arange(256, dtype=np.uint8)
        np.testing.assert_array_equal(table, np.stack([ramp, ramp, ramp], axis=1))

    def test_inverted(self):
        table = generate_palette(PaletteKind.INVERTED)
        assert tuple(table[0]) == (255, 255, 255)
        assert tuple(table[255]) == (0, 0, 0)

    def test_hot_runs_black_to_white(self):
        table = generate_palette(PaletteKind.HOT)
        assert tuple(table[0]) == (0, 0, 0)
        assert tuple(table[255]) == (255, 255, 255)
        assert (np.diff(table.astype(int), axis=0) >= 0).all()
        # red saturates before green starts, green before blue
        assert table[100, 0] == 255 and table[100, 2] == 0
        assert table[95, 1] == 0

    def test_cool_endpoints(self):
        table = generate_palette(PaletteKind.COOL)
        assert tuple(table[0]) == (0, 255, 255)
        assert tuple(table[255]) == (255, 0, 255)

    def test_rainbow_red_to_magenta(self):
        table = generate_palette(PaletteKind.RAINBOW)
        assert tuple(table[0]) == (255, 0, 0)
        assert tuple(table[255]) == (255, 0, 255)

    def test_bone_endpoints(self):
        table = generate_palette(PaletteKind.BONE)
        assert tuple(table[0]) == (0, 0, 0)
        assert (table[255] >= 254).all()
        # shadows lean blue
        assert table[64, 2] > table[64, 0]

    def test_copper_endpoint(self):
        assert tuple(generate_palette(PaletteKind.COPPER)[255]) == (255, 199, 126)

    def test_ocean_starts_deep_blue(self):
        assert tuple(generate_palette(PaletteKind.OCEAN)[0]) == (0, 0, 102)


class TestPaletteTable:
    def test_cached_table_is_read_only(self):
        table = PaletteTable.for_kind(PaletteKind.HOT).table
        assert not table.flags.writeable
        with pytest.raises(ValueError):
            table[0, 0] = 1

    def test_grayscale_maps_to_equal_channels(self):
        palette = PaletteTable(PaletteKind.GRAYSCALE)
        for v in (0, 1, 77, 128, 254, 255):
            assert palette.map_rgb(v) == (v, v, v)

    def test_map_rgb_range_checked(self):
        with pytest.raises(ValueError):
            PaletteTable(PaletteKind.HOT).map_rgb(256)

    def test_apply_keeps_shape(self):
        indices = np.array([[0, 255], [10, 20]], dtype=np.uint8)
        out = PaletteTable(PaletteKind.COOL).apply(indices)
        assert out.shape == (2, 2, 3)
        assert tuple(out[0, 1]) == (255, 0, 255)

    def test_equality_by_kind(self):
        assert PaletteTable(PaletteKind.BONE) == PaletteTable.for_kind(PaletteKind.BONE)
        assert PaletteTable(PaletteKind.BONE) != PaletteTable(PaletteKind.COPPER)
