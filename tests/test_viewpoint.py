"""Exact viewpoint arithmetic."""

import dataclasses
from fractions import Fraction

import pytest

from mandel.viewpoint import (
    DEFAULT,
    DOUBLE_LIMIT,
    FLOAT_LIMIT,
    ZOOM_FACTOR,
    Viewpoint,
    to_fraction,
)


class TestConstruction:
    """Coercion and validation."""

    def test_accepts_strings_and_ints(self) -> None:
        viewpoint = Viewpoint("-0.5", 0, "3/2")
        assert viewpoint == DEFAULT
        assert isinstance(viewpoint.center_y, Fraction)

    def test_float_is_converted_exactly(self) -> None:
        assert to_fraction(0.1) == Fraction(3602879701896397, 36028797018963968)

    def test_scientific_strings(self) -> None:
        assert to_fraction("1e-12") == Fraction(1, 10 ** 12)

    @pytest.mark.parametrize("half_width", [0, "-1", Fraction(-3, 2)])
    def test_half_width_must_be_positive(self, half_width) -> None:
        with pytest.raises(ValueError, match="half_width must be positive"):
            Viewpoint(0, 0, half_width)

    def test_rejects_other_types(self) -> None:
        with pytest.raises(TypeError):
            Viewpoint([0], 0, 1)

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT.half_width = Fraction(1)


class TestGeometry:
    """Pixel to plane mapping."""

    def test_half_height_follows_aspect_ratio(self) -> None:
        assert DEFAULT.half_height(640, 480) == Fraction(9, 8)

    def test_pixel_size(self) -> None:
        assert DEFAULT.pixel_size(600) == Fraction(1, 200)

    def test_corners(self) -> None:
        left, top, right, bottom = DEFAULT.bounds(640, 480)
        assert (left, top, right, bottom) == (Fraction(-2), Fraction(-9, 8), Fraction(1), Fraction(9, 8))
        assert DEFAULT.coord(0, 0, 640, 480) == (left, top)
        assert DEFAULT.coord(640, 480, 640, 480) == (right, bottom)

    def test_center_pixel(self) -> None:
        assert DEFAULT.coord(320, 240, 640, 480) == (DEFAULT.center_x, DEFAULT.center_y)

    def test_invalid_dimensions(self) -> None:
        with pytest.raises(ValueError, match="must be positive"):
            DEFAULT.coord(0, 0, 0, 480)


class TestUpdates:
    """Zoom and translation derive from exact state only."""

    def test_translate_round_trip(self) -> None:
        for dx, dy in [(7, -3), (Fraction(1, 3), Fraction(-5, 7)), (-640, 480)]:
            moved = DEFAULT.translate(dx, dy, 640, 480)
            assert moved != DEFAULT
            assert moved.translate(-dx, -dy, 640, 480) == DEFAULT

    def test_translate_by_one_pixel(self) -> None:
        moved = DEFAULT.translate(1, 0, 600, 400)
        assert moved.center_x == DEFAULT.center_x + Fraction(1, 200)
        assert moved.half_width == DEFAULT.half_width

    def test_zoom_on_center_keeps_center(self) -> None:
        viewpoint = Viewpoint("-0.743643887037151", "0.13182590420533", "0.0001")
        for width, height in [(640, 480), (641, 479), (1, 1)]:
            zoomed = viewpoint.zoom_on_pixel(Fraction(width, 2), Fraction(height, 2), width, height)
            assert zoomed.center_x == viewpoint.center_x
            assert zoomed.center_y == viewpoint.center_y
            assert zoomed.half_width == viewpoint.half_width / ZOOM_FACTOR

    def test_zoom_on_corner(self) -> None:
        zoomed = DEFAULT.zoom_on_pixel(0, 0, 640, 480, factor=2)
        assert (zoomed.center_x, zoomed.center_y) == (Fraction(-2), Fraction(-9, 8))
        assert zoomed.half_width == Fraction(3, 4)

    def test_deep_zoom_is_reversible(self) -> None:
        viewpoint = DEFAULT
        for _ in range(1000):
            viewpoint = viewpoint.zoom_on_pixel(320, 240, 640, 480)
        assert viewpoint.half_width == Fraction(3, 2) / 10 ** 1000
        for _ in range(1000):
            viewpoint = viewpoint.zoom_out()
        assert viewpoint == DEFAULT

    @pytest.mark.parametrize("factor", [0, -2, 1, Fraction(1, 2), "0.999"])
    def test_factor_must_exceed_one(self, factor) -> None:
        with pytest.raises(ValueError, match="Zoom factor must be greater than 1"):
            DEFAULT.zoom_on_pixel(0, 0, 10, 10, factor=factor)
        with pytest.raises(ValueError, match="Zoom factor must be greater than 1"):
            DEFAULT.zoom_out(factor)

    def test_smallest_factor_above_one(self) -> None:
        factor = Fraction(1001, 1000)
        assert DEFAULT.zoom_out(factor).half_width == Fraction(3003, 2000)


class TestLimits:
    """Predefined viewpoints."""

    def test_default(self) -> None:
        assert DEFAULT == Viewpoint(Fraction(-1, 2), 0, Fraction(3, 2))

    def test_limits_are_ordered(self) -> None:
        assert DEFAULT.half_width > FLOAT_LIMIT.half_width > DOUBLE_LIMIT.half_width

    def test_limit_half_widths(self) -> None:
        assert FLOAT_LIMIT.half_width == Fraction(3, 2 ** 18)
        assert DOUBLE_LIMIT.half_width == Fraction(3, 2 ** 48)
