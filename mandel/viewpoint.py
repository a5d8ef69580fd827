"""Exact-rational description of the visible region of the complex plane."""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Union

Coordinate = Union[Fraction, int, str]

# Half width is divided by this factor on every zoom gesture.
ZOOM_FACTOR = Fraction(10)


def to_fraction(value: Coordinate) -> Fraction:
    """Convert ``value`` to an exact ``Fraction``.

    Strings may be decimals (``"-0.75"``, ``"1e-12"``) or ratios (``"3/2"``).
    Floats are accepted and converted exactly.
    """

    if isinstance(value, Fraction):
        return value
    if isinstance(value, (int, float, str)):
        return Fraction(value)
    raise TypeError(f"Cannot use {type(value).__name__} as an exact coordinate")


def _check_dimensions(width: int, height: int) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}.")


@dataclass(frozen=True)
class Viewpoint:
    """Center and half width of the displayed region, all exact.

    Coordinates increase to the right and downward; pixel ``(0, 0)`` is the
    top-left corner of the region. The half height of an image follows from its
    aspect ratio. Every derived viewpoint is computed from this exact state, so
    zooms and translations never accumulate rounding error.
    """

    center_x: Fraction
    center_y: Fraction
    half_width: Fraction

    def __post_init__(self) -> None:
        object.__setattr__(self, "center_x", to_fraction(self.center_x))
        object.__setattr__(self, "center_y", to_fraction(self.center_y))
        object.__setattr__(self, "half_width", to_fraction(self.half_width))
        if self.half_width <= 0:
            raise ValueError(f"half_width must be positive, got {self.half_width}.")

    def half_height(self, width: int, height: int) -> Fraction:
        _check_dimensions(width, height)
        return self.half_width * height / width

    def pixel_size(self, width: int) -> Fraction:
        _check_dimensions(width, 1)
        return self.half_width * 2 / width

    def coord(self, x: Coordinate, y: Coordinate, width: int, height: int) -> tuple[Fraction, Fraction]:
        """Map pixel ``(x, y)`` of a ``width`` x ``height`` image to the plane."""

        half_height = self.half_height(width, height)
        pixel_size = self.pixel_size(width)
        cx = self.center_x - self.half_width + pixel_size * to_fraction(x)
        cy = self.center_y - half_height + pixel_size * to_fraction(y)
        return cx, cy

    def bounds(self, width: int, height: int) -> tuple[Fraction, Fraction, Fraction, Fraction]:
        """Return ``(left, top, right, bottom)`` of the visible rectangle."""

        half_height = self.half_height(width, height)
        return (
            self.center_x - self.half_width,
            self.center_y - half_height,
            self.center_x + self.half_width,
            self.center_y + half_height,
        )

    def zoom_on_pixel(
        self,
        x: Coordinate,
        y: Coordinate,
        width: int,
        height: int,
        factor: Coordinate = ZOOM_FACTOR,
    ) -> Viewpoint:
        """Recenter on pixel ``(x, y)`` and shrink the half width by ``factor``."""

        factor = _check_factor(factor)
        cx, cy = self.coord(x, y, width, height)
        return Viewpoint(cx, cy, self.half_width / factor)

    def zoom_out(self, factor: Coordinate = ZOOM_FACTOR) -> Viewpoint:
        """Grow the half width by ``factor`` around the current center."""

        factor = _check_factor(factor)
        return Viewpoint(self.center_x, self.center_y, self.half_width * factor)

    def translate(self, shift_x: Coordinate, shift_y: Coordinate, width: int, height: int) -> Viewpoint:
        """Shift the center by ``(shift_x, shift_y)`` pixels, keeping the half width."""

        _check_dimensions(width, height)
        pixel_size = self.pixel_size(width)
        cx = self.center_x + pixel_size * to_fraction(shift_x)
        cy = self.center_y + pixel_size * to_fraction(shift_y)
        return Viewpoint(cx, cy, self.half_width)


def _check_factor(factor: Coordinate) -> Fraction:
    factor = to_fraction(factor)
    if factor <= 1:
        raise ValueError(f"Zoom factor must be greater than 1, got {factor}.")
    return factor


DEFAULT = Viewpoint(Fraction(-1, 2), Fraction(0), Fraction(3, 2))

# Deepest views that still resolve distinct pixels in float32 / float64.
FLOAT_LIMIT = Viewpoint(
    Fraction(-23736827, 41943040),
    Fraction(-1676523, 2621440),
    Fraction(3, 262144),
)
DOUBLE_LIMIT = Viewpoint(
    Fraction(-57604895564971893, 90071992547409920),
    Fraction(-57604895564971893, 90071992547409920),
    Fraction(3, 281474976710656),
)
