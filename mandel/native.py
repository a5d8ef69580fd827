"""Vectorized escape-time rendering for native float32 / float64 fields."""

from __future__ import annotations

from typing import Optional

import numpy as np
import tensorflow as tf

from .fields import NumericField
from .kernel import frame_geometry
from .viewpoint import Viewpoint

_DTYPES = {"float32": tf.float32, "float64": tf.float64}


@tf.function
def _escape_run(c_real: tf.Tensor, c_imag: tf.Tensor, max_iterations: tf.Tensor) -> tf.Tensor:
    """Iterate every pixel with a TensorFlow while loop; -1 marks "did not escape"."""

    four = tf.cast(4, c_real.dtype)
    steps = tf.fill(tf.shape(c_real), tf.constant(-1, dtype=tf.int32))
    i = tf.constant(0, dtype=tf.int32)

    def cond(i: tf.Tensor, zr: tf.Tensor, zi: tf.Tensor, steps: tf.Tensor) -> tf.Tensor:
        return tf.logical_and(tf.less(i, max_iterations), tf.reduce_any(steps < 0))

    def body(i: tf.Tensor, zr: tf.Tensor, zi: tf.Tensor, steps: tf.Tensor) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor, tf.Tensor]:
        zr2 = zr * zr
        zi2 = zi * zi
        escaped = tf.logical_and(zr2 + zi2 > four, steps < 0)
        steps = tf.where(escaped, i, steps)
        product = zr * zi
        new_zi = (product + product) + c_imag
        new_zr = (zr2 - zi2) + c_real
        active = steps < 0
        zr = tf.where(active, new_zr, zr)
        zi = tf.where(active, new_zi, zi)
        return i + 1, zr, zi, steps

    _, _, _, steps = tf.while_loop(cond, body, (i, c_real, c_imag, steps))
    return steps


def native_escape_steps(
    field: NumericField,
    viewpoint: Viewpoint,
    width: int,
    height: int,
    max_iterations: int,
    *,
    device: Optional[str] = None,
) -> np.ndarray:
    """Escape-step grid (``int32``, shape ``(height, width)``) in the field's precision.

    Pixel coordinates are formed as ``left + x * step`` from the exact frame
    geometry, exactly like the generic kernel does.
    """

    dtype = _DTYPES[field.name]
    geometry = frame_geometry(field, viewpoint, width, height)

    with tf.device(device if device is not None else "/CPU:0"):
        step = tf.constant(geometry.step, dtype=dtype)
        xs = tf.constant(geometry.left, dtype=dtype) + tf.cast(tf.range(width), dtype) * step
        ys = tf.constant(geometry.top, dtype=dtype) + tf.cast(tf.range(height), dtype) * step
        c_real, c_imag = tf.meshgrid(xs, ys)
        steps = _escape_run(c_real, c_imag, tf.constant(max_iterations, dtype=tf.int32))

    return steps.numpy()
