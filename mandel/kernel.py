"""Escape-time iteration written once over a :class:`NumericField`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, List, Optional, Protocol, Tuple, TypeVar

from .fields import NumericField
from .viewpoint import Viewpoint

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ITERATIONS = 500

Color = Tuple[int, int, int]
Palette = Callable[[Optional[int]], Color]


class ImageSink(Protocol):
    """Anything the kernel can draw into."""

    width: int
    height: int

    def set_pixel(self, x: int, y: int, r: int, g: int, b: int) -> None:
        """Set pixel ``(x, y)`` to ``(r, g, b)``, each channel in 0-255."""


def classic_palette(step: Optional[int]) -> Color:
    """Black inside the set, blue shading by escape step outside."""

    if step is None:
        return (0, 0, 0)
    return (0, (step * 16) % 256, 255)


def iterate(field: NumericField[T], c_real: T, c_imag: T, max_iterations: int = MAX_ITERATIONS) -> Optional[int]:
    """Return the step at which ``c`` escapes, or None if it never does.

    The orbit starts at ``z = c`` (the first step from ``z = 0`` is free), and
    escape means ``|z|^2 > 4`` in the field's own arithmetic.
    """

    four = field.from_int(4)
    z_real, z_imag = c_real, c_imag
    for step in range(max_iterations):
        z_real2 = field.multiply(z_real, z_real)
        z_imag2 = field.multiply(z_imag, z_imag)
        if field.greater_than(field.add(z_real2, z_imag2), four):
            return step
        z_imag = field.add(field.twice(field.multiply(z_real, z_imag)), c_imag)
        z_real = field.add(field.subtract(z_real2, z_imag2), c_real)
    return None


@dataclass(frozen=True)
class FrameGeometry(Generic[T]):
    """Frame origin and pixel step converted to a field's representation."""

    left: T
    top: T
    step: T


def frame_geometry(field: NumericField[T], viewpoint: Viewpoint, width: int, height: int) -> FrameGeometry[T]:
    left, top = viewpoint.coord(0, 0, width, height)
    geometry = FrameGeometry(
        left=field.from_rational(left),
        top=field.from_rational(top),
        step=field.from_rational(viewpoint.pixel_size(width)),
    )
    logger.debug("frame geometry in %s: left=%s top=%s step=%s", field.name, geometry.left, geometry.top, geometry.step)
    return geometry


def _axis(field: NumericField[T], origin: T, step: T, count: int) -> List[T]:
    return [field.add(origin, field.multiply(step, field.from_int(i))) for i in range(count)]


def escape_rows(
    field: NumericField[T],
    viewpoint: Viewpoint,
    width: int,
    height: int,
    max_iterations: int = MAX_ITERATIONS,
    rows: Optional[Iterable[int]] = None,
) -> List[List[Optional[int]]]:
    """Escape steps for the requested rows (all rows by default).

    Rows are independent of each other, which makes them the unit callers can
    hand to separate workers.
    """

    geometry = frame_geometry(field, viewpoint, width, height)
    reals = _axis(field, geometry.left, geometry.step, width)
    if rows is None:
        rows = range(height)
    result = []
    for y in rows:
        c_imag = field.add(geometry.top, field.multiply(geometry.step, field.from_int(y)))
        result.append([iterate(field, c_real, c_imag, max_iterations) for c_real in reals])
    return result


def plot(
    field: NumericField[T],
    viewpoint: Viewpoint,
    sink: ImageSink,
    max_iterations: int = MAX_ITERATIONS,
    palette: Palette = classic_palette,
) -> None:
    """Draw ``viewpoint`` into ``sink``, writing every pixel exactly once."""

    width, height = sink.width, sink.height
    geometry = frame_geometry(field, viewpoint, width, height)
    reals = _axis(field, geometry.left, geometry.step, width)
    imags = _axis(field, geometry.top, geometry.step, height)
    for y, c_imag in enumerate(imags):
        for x, c_real in enumerate(reals):
            r, g, b = palette(iterate(field, c_real, c_imag, max_iterations))
            sink.set_pixel(x, y, r, g, b)
