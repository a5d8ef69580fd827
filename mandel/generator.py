"""Utilities for planning Mandelbrot zoom sequences over exact viewpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import Callable, Iterator

import numpy as np

from .viewpoint import DOUBLE_LIMIT, FLOAT_LIMIT, ZOOM_FACTOR, Viewpoint, to_fraction

logger = logging.getLogger(__name__)


def select_field(viewpoint: Viewpoint) -> str:
    """Pick the cheapest numeric field that still resolves ``viewpoint``."""

    if viewpoint.half_width >= FLOAT_LIMIT.half_width:
        return "float32"
    if viewpoint.half_width >= DOUBLE_LIMIT.half_width:
        return "float64"
    return "doubledouble"


def edge_mask(steps: np.ndarray) -> np.ndarray:
    """Mark pixels where membership in the set changes from a neighbour."""

    inside = steps < 0
    edges = np.zeros(inside.shape, dtype=bool)
    vertical = inside[1:, :] != inside[:-1, :]
    horizontal = inside[:, 1:] != inside[:, :-1]
    edges[1:, :] |= vertical
    edges[:, 1:] |= horizontal
    return edges


def select_zoom_center(edges: np.ndarray) -> tuple[int, int]:
    """Select a deterministic ``(x, y)`` focus pixel near the center of the edge map."""

    height, width = edges.shape
    center_row = height // 2
    center_col = width // 2
    if edges.size == 0:
        return center_col, center_row

    for radius in range(max(height, width)):
        row_start = max(center_row - radius, 0)
        row_end = min(center_row + radius + 1, height)
        col_start = max(center_col - radius, 0)
        col_end = min(center_col + radius + 1, width)
        region = edges[row_start:row_end, col_start:col_end]
        if np.any(region):
            indices = np.argwhere(region)
            indices[:, 0] += row_start
            indices[:, 1] += col_start
            return _closest_to_center(indices, edges.shape)

    return center_col, center_row


def _closest_to_center(edge_indices: np.ndarray, shape: tuple[int, int]) -> tuple[int, int]:
    center = np.array([(shape[0] - 1) / 2.0, (shape[1] - 1) / 2.0], dtype=np.float64)
    indices = edge_indices.astype(np.float64, copy=False)
    distances = np.sum((indices - center) ** 2, axis=1)
    row, col = edge_indices[int(np.argmin(distances))]
    return int(col), int(row)


@dataclass(frozen=True)
class ZoomPlanner:
    """Derive each frame's viewpoint from the previous one and its escape grid."""

    width: int
    height: int
    zoom_factor: Fraction = ZOOM_FACTOR

    def __post_init__(self) -> None:
        object.__setattr__(self, "zoom_factor", to_fraction(self.zoom_factor))
        if self.zoom_factor <= 1:
            raise ValueError(f"zoom_factor must be greater than 1, got {self.zoom_factor}.")

    def focus(self, steps: np.ndarray) -> tuple[int, int]:
        return select_zoom_center(edge_mask(steps))

    def next_viewpoint(self, viewpoint: Viewpoint, steps: np.ndarray) -> Viewpoint:
        x, y = self.focus(steps)
        logger.debug("zooming on pixel (%d, %d) by %s", x, y, self.zoom_factor)
        return viewpoint.zoom_on_pixel(x, y, self.width, self.height, self.zoom_factor)

    def path(
        self,
        viewpoint: Viewpoint,
        frames: int,
        render: Callable[[Viewpoint], np.ndarray],
    ) -> Iterator[tuple[Viewpoint, np.ndarray]]:
        """Yield ``(viewpoint, steps)`` for each frame of a zoom sequence.

        ``render`` maps a viewpoint to its escape-step grid (-1 inside the set).
        """

        for index in range(frames):
            steps = render(viewpoint)
            yield viewpoint, steps
            if index < frames - 1:
                viewpoint = self.next_viewpoint(viewpoint, steps)
