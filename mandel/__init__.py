"""Public API for the Mandelbrot precision engine."""

from .doubledouble import (
    BuilderFinalizedError,
    DoubleDouble,
    DoubleDoubleBuilder,
    DoubleDoubleParseError,
    compare,
    parse,
)
from .fields import (
    FIELDS,
    DoubleDoubleField,
    Float32Field,
    Float64Field,
    NumericField,
    RationalField,
    get_field,
)
from .generator import ZoomPlanner, edge_mask, select_field, select_zoom_center
from .kernel import MAX_ITERATIONS, ImageSink, classic_palette, escape_rows, frame_geometry, iterate, plot
from .viewpoint import DEFAULT, DOUBLE_LIMIT, FLOAT_LIMIT, ZOOM_FACTOR, Viewpoint

__all__ = [
    "BuilderFinalizedError",
    "DEFAULT",
    "DOUBLE_LIMIT",
    "DoubleDouble",
    "DoubleDoubleBuilder",
    "DoubleDoubleField",
    "DoubleDoubleParseError",
    "FIELDS",
    "FLOAT_LIMIT",
    "Float32Field",
    "Float64Field",
    "ImageSink",
    "MAX_ITERATIONS",
    "NumericField",
    "RationalField",
    "Viewpoint",
    "ZOOM_FACTOR",
    "ZoomPlanner",
    "classic_palette",
    "compare",
    "edge_mask",
    "escape_rows",
    "frame_geometry",
    "get_field",
    "iterate",
    "parse",
    "plot",
    "select_field",
    "select_zoom_center",
]
