"""Pixel buffers, palettes and the render engines that need no TensorFlow."""

import numpy as np
import PIL.Image
import pytest

from mandel.fields import Float64Field
from mandel.kernel import classic_palette, escape_rows, plot
from mandel.renderer import (
    PixelBuffer,
    RenderParameters,
    RenderResult,
    colorize,
    colormap_palette,
    doubledouble_escape_steps,
    render_frame,
)
from mandel.viewpoint import DEFAULT, DOUBLE_LIMIT, Viewpoint


def _kernel_grid(field_name: str, viewpoint: Viewpoint, width: int, height: int, max_iterations: int) -> np.ndarray:
    params = RenderParameters(width, height, viewpoint, max_iterations, field=field_name, engine="kernel")
    return render_frame(params).steps


class TestPixelBuffer:
    """The numpy-backed ImageSink."""

    def test_set_pixel(self) -> None:
        buffer = PixelBuffer(4, 3)
        buffer.set_pixel(3, 2, 10, 20, 30)
        assert buffer.array.shape == (3, 4, 3)
        assert buffer.array.dtype == np.uint8
        assert buffer.array[2, 3].tolist() == [10, 20, 30]

    def test_out_of_range(self) -> None:
        buffer = PixelBuffer(4, 3)
        with pytest.raises(IndexError):
            buffer.set_pixel(4, 0, 0, 0, 0)
        with pytest.raises(ValueError):
            buffer.set_pixel(0, 0, 0, 256, 0)

    def test_invalid_size(self) -> None:
        with pytest.raises(ValueError):
            PixelBuffer(0, 3)

    def test_plot_matches_colorize(self) -> None:
        buffer = PixelBuffer(12, 9)
        plot(Float64Field(), DEFAULT, buffer, 30)
        rows = escape_rows(Float64Field(), DEFAULT, 12, 9, 30)
        steps = np.array([[-1 if step is None else step for step in row] for row in rows])
        assert np.array_equal(buffer.array, colorize(steps))

    def test_to_image(self) -> None:
        image = PixelBuffer(5, 2).to_image()
        assert isinstance(image, PIL.Image.Image)
        assert image.size == (5, 2)


class TestPalettes:
    """colorize() and colormap_palette()."""

    def test_colorize_classic(self) -> None:
        colors = colorize(np.array([[-1, 0], [1, 2]]))
        assert colors.shape == (2, 2, 3)
        assert colors.dtype == np.uint8
        assert colors.tolist() == [[[0, 0, 0], [0, 0, 255]], [[0, 16, 255], [0, 32, 255]]]

    def test_colormap_cycles(self) -> None:
        palette = colormap_palette("viridis", 8)
        assert palette(None) == (0, 0, 0)
        assert palette(3) == palette(11)
        assert palette(0) != palette(4)
        assert all(0 <= channel <= 255 for channel in palette(5))

    def test_unknown_colormap(self) -> None:
        with pytest.raises(ValueError, match="Unknown matplotlib colormap"):
            colormap_palette("no-such-map")

    def test_period_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="period"):
            colormap_palette("viridis", 0)


class TestRenderParameters:
    """Validation of render configuration."""

    def test_defaults(self) -> None:
        params = RenderParameters(8, 6, DEFAULT)
        assert params.field == "float64"
        assert params.engine == "vectorized"
        assert params.workers == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"width": 0},
            {"max_iterations": 0},
            {"engine": "gpu"},
            {"field": "quad"},
            {"workers": 0},
        ],
    )
    def test_invalid(self, overrides) -> None:
        values = {"width": 8, "height": 6, "viewpoint": DEFAULT}
        values.update(overrides)
        with pytest.raises(ValueError):
            RenderParameters(**values)


class TestEngines:
    """Vectorized and parallel paths agree with the generic kernel."""

    def test_doubledouble_vectorized_matches_kernel(self) -> None:
        vectorized = doubledouble_escape_steps(DEFAULT, 16, 12, 50)
        assert vectorized.dtype == np.int32
        assert np.array_equal(vectorized, _kernel_grid("doubledouble", DEFAULT, 16, 12, 50))

    def test_doubledouble_vectorized_matches_kernel_past_double_limit(self) -> None:
        viewpoint = DOUBLE_LIMIT.zoom_on_pixel(5, 4, 10, 8)
        params = RenderParameters(10, 8, viewpoint, 80, field="doubledouble")
        result = render_frame(params)
        assert result.field == "doubledouble"
        assert np.array_equal(result.steps, _kernel_grid("doubledouble", viewpoint, 10, 8, 80))

    def test_rational_falls_back_to_kernel(self) -> None:
        params = RenderParameters(4, 3, DEFAULT, 5, field="rational")
        result = render_frame(params)
        assert result.steps.shape == (3, 4)
        assert result.steps.dtype == np.int32
        assert np.array_equal(result.steps, _kernel_grid("rational", DEFAULT, 4, 3, 5))

    def test_workers_match_single_process(self) -> None:
        single = _kernel_grid("float64", DEFAULT, 10, 7, 30)
        params = RenderParameters(10, 7, DEFAULT, 30, field="float64", engine="kernel", workers=3)
        assert np.array_equal(render_frame(params).steps, single)

    def test_result_to_image(self) -> None:
        result = render_frame(RenderParameters(6, 4, DEFAULT, 20, field="doubledouble"))
        assert isinstance(result, RenderResult)
        image = result.to_image(classic_palette)
        assert image.size == (6, 4)
        assert result.viewpoint == DEFAULT
