"""Frame rendering front-end: engines, pixel buffers and palettes."""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence

import matplotlib
import numpy as np
import PIL.Image

from .doubledouble import dd_add, dd_gt, dd_mul, dd_sub
from .fields import DoubleDoubleField, NumericField, get_field
from .kernel import MAX_ITERATIONS, Palette, classic_palette, escape_rows, frame_geometry
from .viewpoint import Viewpoint

logger = logging.getLogger(__name__)

ENGINES = ("vectorized", "kernel")


class PixelBuffer:
    """RGB image sink backed by a ``(height, width, 3)`` uint8 array."""

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"PixelBuffer dimensions must be positive, got {width}x{height}.")
        self.width = width
        self.height = height
        self.array = np.zeros((height, width, 3), dtype=np.uint8)

    def set_pixel(self, x: int, y: int, r: int, g: int, b: int) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"pixel ({x}, {y}) outside {self.width}x{self.height} buffer")
        for channel in (r, g, b):
            if not 0 <= channel <= 255:
                raise ValueError(f"color channel {channel} outside 0-255")
        self.array[y, x] = (r, g, b)

    def to_image(self) -> PIL.Image.Image:
        return PIL.Image.fromarray(self.array)


def colormap_palette(name: str = "twilight_shifted", period: int = 64) -> Palette:
    """Cycle a matplotlib colormap every ``period`` escape steps; inside is black."""

    if period <= 0:
        raise ValueError(f"period must be positive, got {period}.")
    try:
        cmap = matplotlib.colormaps[name]
    except KeyError:
        raise ValueError(f"Unknown matplotlib colormap '{name}'.") from None
    rgba = cmap(np.linspace(0.0, 1.0, period, endpoint=False))
    table = [tuple(int(round(channel * 255)) for channel in color[:3]) for color in rgba]

    def palette(step: Optional[int]) -> tuple[int, int, int]:
        if step is None:
            return (0, 0, 0)
        return table[step % period]

    return palette


def colorize(steps: np.ndarray, palette: Palette = classic_palette) -> np.ndarray:
    """Map an escape-step grid (-1 inside) to a ``(height, width, 3)`` uint8 image."""

    values, inverse = np.unique(steps, return_inverse=True)
    colors = np.array(
        [palette(None if value < 0 else int(value)) for value in values],
        dtype=np.uint8,
    ).reshape(-1, 3)
    return colors[inverse.reshape(steps.shape)]


@dataclass(frozen=True)
class RenderParameters:
    """Parameters that describe a single render of the Mandelbrot set."""

    width: int
    height: int
    viewpoint: Viewpoint
    max_iterations: int = MAX_ITERATIONS
    field: str = "float64"
    engine: str = "vectorized"
    workers: int = 1

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {self.width}x{self.height}.")
        if self.max_iterations <= 0:
            raise ValueError(f"max_iterations must be positive, got {self.max_iterations}.")
        if self.engine not in ENGINES:
            raise ValueError(f"Unknown engine '{self.engine}'. Valid choices: {', '.join(ENGINES)}.")
        if self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}.")
        get_field(self.field)


@dataclass(frozen=True)
class RenderResult:
    """Escape steps of a rendered frame; -1 marks points that did not escape."""

    steps: np.ndarray
    field: str
    viewpoint: Viewpoint

    def to_image(self, palette: Palette = classic_palette) -> PIL.Image.Image:
        return PIL.Image.fromarray(colorize(self.steps, palette))


def doubledouble_escape_steps(viewpoint: Viewpoint, width: int, height: int, max_iterations: int) -> np.ndarray:
    """Double-double escape grid computed on numpy arrays of ``(hi, lo)`` words.

    Runs the same operation sequence as the generic kernel over
    :class:`DoubleDoubleField`, so both produce identical grids.
    """

    geometry = frame_geometry(DoubleDoubleField(), viewpoint, width, height)
    step = geometry.step

    def axis(origin, count):
        index = np.arange(count, dtype=np.float64)
        offset_hi, offset_lo = dd_mul(step.hi, step.lo, index, np.zeros_like(index))
        return dd_add(origin.hi, origin.lo, offset_hi, offset_lo)

    xs_hi, xs_lo = axis(geometry.left, width)
    ys_hi, ys_lo = axis(geometry.top, height)
    cr_hi, ci_hi = (grid.ravel() for grid in np.meshgrid(xs_hi, ys_hi))
    cr_lo, ci_lo = (grid.ravel() for grid in np.meshgrid(xs_lo, ys_lo))

    steps = np.full(width * height, -1, dtype=np.int32)
    active = np.arange(width * height)
    zr_hi, zr_lo, zi_hi, zi_lo = cr_hi, cr_lo, ci_hi, ci_lo
    for n in range(max_iterations):
        zr2_hi, zr2_lo = dd_mul(zr_hi, zr_lo, zr_hi, zr_lo)
        zi2_hi, zi2_lo = dd_mul(zi_hi, zi_lo, zi_hi, zi_lo)
        norm_hi, norm_lo = dd_add(zr2_hi, zr2_lo, zi2_hi, zi2_lo)
        escaped = dd_gt(norm_hi, norm_lo, 4.0, 0.0)
        steps[active[escaped]] = n

        keep = ~escaped
        active = active[keep]
        if active.size == 0:
            break
        zr_hi, zr_lo, zi_hi, zi_lo = zr_hi[keep], zr_lo[keep], zi_hi[keep], zi_lo[keep]
        zr2_hi, zr2_lo, zi2_hi, zi2_lo = zr2_hi[keep], zr2_lo[keep], zi2_hi[keep], zi2_lo[keep]

        p_hi, p_lo = dd_mul(zr_hi, zr_lo, zi_hi, zi_lo)
        p_hi, p_lo = dd_add(p_hi, p_lo, p_hi, p_lo)
        zi_hi, zi_lo = dd_add(p_hi, p_lo, ci_hi[active], ci_lo[active])
        d_hi, d_lo = dd_sub(zr2_hi, zr2_lo, zi2_hi, zi2_lo)
        zr_hi, zr_lo = dd_add(d_hi, d_lo, cr_hi[active], cr_lo[active])

    return steps.reshape(height, width)


def _render_rows(
    field_name: str,
    viewpoint: Viewpoint,
    width: int,
    height: int,
    max_iterations: int,
    rows: Sequence[int],
) -> List[List[int]]:
    rendered = escape_rows(get_field(field_name), viewpoint, width, height, max_iterations, rows)
    return [[-1 if step is None else step for step in row] for row in rendered]


def kernel_escape_steps(params: RenderParameters, field: NumericField) -> np.ndarray:
    """Run the generic kernel, splitting rows across worker processes if asked."""

    if params.workers == 1:
        rows = _render_rows(field.name, params.viewpoint, params.width, params.height,
                            params.max_iterations, range(params.height))
        return np.array(rows, dtype=np.int32).reshape(params.height, params.width)

    chunks = [chunk.tolist() for chunk in np.array_split(np.arange(params.height), params.workers) if chunk.size]
    logger.debug("rendering %d rows on %d workers", params.height, len(chunks))
    rows: List[List[int]] = []
    with ProcessPoolExecutor(max_workers=len(chunks)) as pool:
        futures = [
            pool.submit(_render_rows, field.name, params.viewpoint, params.width, params.height,
                        params.max_iterations, chunk)
            for chunk in chunks
        ]
        for future in futures:
            rows.extend(future.result())
    return np.array(rows, dtype=np.int32).reshape(params.height, params.width)


def render_frame(params: RenderParameters, *, device: Optional[str] = None) -> RenderResult:
    """Render a frame with the engine and field named in ``params``."""

    field = get_field(params.field)
    if params.engine == "vectorized" and field.name in ("float32", "float64"):
        from .native import native_escape_steps

        steps = native_escape_steps(field, params.viewpoint, params.width, params.height,
                                    params.max_iterations, device=device)
    elif params.engine == "vectorized" and field.name == "doubledouble":
        steps = doubledouble_escape_steps(params.viewpoint, params.width, params.height, params.max_iterations)
    else:
        if params.engine == "vectorized":
            logger.debug("no vectorized engine for %s, using the generic kernel", field.name)
        steps = kernel_escape_steps(params, field)
    return RenderResult(steps=steps, field=field.name, viewpoint=params.viewpoint)
