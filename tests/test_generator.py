"""Zoom planning: field selection, edge detection and frame paths."""

from fractions import Fraction

import numpy as np
import pytest

from mandel.generator import ZoomPlanner, edge_mask, select_field, select_zoom_center
from mandel.viewpoint import DEFAULT, DOUBLE_LIMIT, FLOAT_LIMIT, Viewpoint


def _narrowed(viewpoint: Viewpoint, factor: int) -> Viewpoint:
    return Viewpoint(viewpoint.center_x, viewpoint.center_y, viewpoint.half_width / factor)


class TestSelectField:
    """Cheapest field that still resolves a viewpoint."""

    def test_default_view_uses_float32(self) -> None:
        assert select_field(DEFAULT) == "float32"

    def test_thresholds(self) -> None:
        assert select_field(FLOAT_LIMIT) == "float32"
        assert select_field(_narrowed(FLOAT_LIMIT, 2)) == "float64"
        assert select_field(DOUBLE_LIMIT) == "float64"
        assert select_field(_narrowed(DOUBLE_LIMIT, 10)) == "doubledouble"


class TestEdges:
    """edge_mask() and select_zoom_center()."""

    def test_single_inside_pixel(self) -> None:
        steps = np.array([[1, 1, 1], [1, -1, 1], [1, 1, 1]])
        edges = edge_mask(steps)
        assert edges.dtype == bool
        assert set(map(tuple, np.argwhere(edges))) == {(1, 1), (1, 2), (2, 1)}

    def test_uniform_grid_has_no_edges(self) -> None:
        assert not edge_mask(np.full((4, 5), 7)).any()
        assert not edge_mask(np.full((4, 5), -1)).any()

    def test_no_wraparound(self) -> None:
        steps = np.array([[-1, 1, 1, -1]])
        assert edge_mask(steps).tolist() == [[False, True, False, True]]

    def test_center_without_edges(self) -> None:
        assert select_zoom_center(np.zeros((6, 8), dtype=bool)) == (4, 3)

    def test_closest_edge_wins(self) -> None:
        edges = np.zeros((5, 5), dtype=bool)
        edges[0, 4] = True
        edges[3, 2] = True
        assert select_zoom_center(edges) == (2, 3)

    def test_far_edge_is_found(self) -> None:
        edges = np.zeros((5, 5), dtype=bool)
        edges[0, 4] = True
        assert select_zoom_center(edges) == (4, 0)


class TestZoomPlanner:
    """Frame-by-frame viewpoint derivation."""

    def test_factor_must_exceed_one(self) -> None:
        with pytest.raises(ValueError, match="greater than 1"):
            ZoomPlanner(8, 6, 1)

    def test_factor_is_exact(self) -> None:
        assert ZoomPlanner(8, 6, "2.5").zoom_factor == Fraction(5, 2)

    def test_next_viewpoint_zooms_on_focus(self) -> None:
        planner = ZoomPlanner(5, 5, 2)
        steps = np.full((5, 5), 3)
        steps[0, 4] = -1
        viewpoint = Viewpoint(0, 0, 1)
        focus = planner.focus(steps)
        expected = viewpoint.zoom_on_pixel(*focus, 5, 5, 2)
        assert planner.next_viewpoint(viewpoint, steps) == expected
        assert expected.half_width == Fraction(1, 2)

    def test_path(self) -> None:
        planner = ZoomPlanner(8, 6)
        seen = []

        def render(viewpoint: Viewpoint) -> np.ndarray:
            seen.append(viewpoint)
            return np.full((6, 8), 5, dtype=np.int32)

        frames = list(planner.path(DEFAULT, 4, render))
        assert len(frames) == 4
        assert [viewpoint for viewpoint, _ in frames] == seen
        assert frames[0][0] == DEFAULT
        for index, (viewpoint, steps) in enumerate(frames):
            assert viewpoint.half_width == DEFAULT.half_width / 10 ** index
            assert (viewpoint.center_x, viewpoint.center_y) == (DEFAULT.center_x, DEFAULT.center_y)
            assert steps.shape == (6, 8)

    def test_empty_path(self) -> None:
        assert list(ZoomPlanner(8, 6).path(DEFAULT, 0, lambda viewpoint: None)) == []
