import logging
import os
import sys
from argparse import ArgumentParser
from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path
from typing import Any

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])

if not _cli_verbose and os.environ.get("TF_CPP_MIN_LOG_LEVEL") is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

import imageio
import numpy as np
import PIL.Image

from mandel import (
    DoubleDouble,
    FIELDS,
    MAX_ITERATIONS,
    Viewpoint,
    ZoomPlanner,
    classic_palette,
    select_field,
)
from mandel.renderer import ENGINES, RenderParameters, colorize, colormap_palette, render_frame

logger = logging.getLogger("zoom")

VALID_MODES = ("image", "gif", "frames")


@dataclass
class OutputConfig:
    modes: tuple[str, ...]
    gif_path: Path | None
    image_path: Path | None
    frame_dir: Path | None
    image_format: str


def build_parser():
    parser = ArgumentParser(description='Render the Mandelbrot set, or a zoom into it, from an exact viewpoint.')

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='iterations before a point is considered inside the set',
                        metavar='MAX_ITERATIONS', default=MAX_ITERATIONS)

    parser.add_argument('--x-res', type=int,
                        dest='x_res', help='image width in pixels',
                        metavar='X_RES', default=640)

    parser.add_argument('--y-res', type=int,
                        dest='y_res', help='image height in pixels',
                        metavar='Y_RES', default=480)

    parser.add_argument('--x-center', type=str,
                        dest='x_center', help='real part of the view center, as an exact decimal or p/q ratio',
                        metavar='X_CENTER', default='-1/2')

    parser.add_argument('--y-center', type=str,
                        dest='y_center', help='imaginary part of the view center (increasing downward)',
                        metavar='Y_CENTER', default='0')

    parser.add_argument('--half-width', type=str,
                        dest='half_width', help='half of the visible width in the complex plane',
                        metavar='HALF_WIDTH', default='3/2')

    parser.add_argument('--field', choices=['auto', *sorted(FIELDS)], default='auto',
                        help='numeric representation; "auto" switches to a more precise one as the zoom deepens')

    parser.add_argument('--engine', choices=list(ENGINES), default='vectorized',
                        help='vectorized array engine, or the generic per-pixel kernel')

    parser.add_argument('--workers', type=int, default=1,
                        help='worker processes for the per-pixel kernel engine')

    parser.add_argument('--zoom-factor', type=str,
                        dest='zoom_factor', help='exact factor by which the half width shrinks each frame (> 1)',
                        metavar='ZOOM_FACTOR', default='10')

    parser.add_argument('--frames', type=int,
                        dest='frames', help='number of frames to generate',
                        metavar='FRAMES', default=1)

    parser.add_argument('--mode', dest='modes', action='append', metavar='MODE',
                        help='Output modes to generate. May be repeated. Choices: image, gif, frames.')

    parser.add_argument('--output', dest='output', type=str,
                        help='Destination for single-file outputs (gif/image) or container directory when both are requested.')

    parser.add_argument('--frame-dir', dest='frame_dir', type=str,
                        help='Directory in which to store the numbered frame sequence.')

    parser.add_argument('--colormap', type=str,
                        dest='colormap', help='"classic" or a matplotlib colormap (e.g. "viridis", "inferno")',
                        metavar='COLORMAP', default='classic')

    parser.add_argument('--period', type=int, default=64,
                        help='escape steps per colormap cycle')

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for image-based outputs. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('--verbose', '-v', action='store_true',
                        help='log field switches and frame viewpoints')

    return parser


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    modes: list[str] = []
    for mode in opt.modes or ["image"]:
        if mode not in VALID_MODES:
            parser.error(f"Unknown output mode '{mode}'. Valid choices: {', '.join(VALID_MODES)}.")
        if mode not in modes:
            modes.append(mode)

    image_format = (opt.format or "png").lower().lstrip(".") or "png"

    frame_dir: Path | None = None
    if "frames" in modes:
        frame_dir = Path(opt.frame_dir or "./frames").expanduser().resolve()
    elif opt.frame_dir is not None:
        parser.error("--frame-dir is only valid with the frames mode.")

    file_modes = [mode for mode in modes if mode in {"gif", "image"}]
    gif_path: Path | None = None
    image_path: Path | None = None

    if not file_modes:
        if opt.output:
            parser.error("--output is only valid when gif or image modes are requested.")
    elif len(file_modes) == 1:
        output_path = Path(opt.output).expanduser() if opt.output else None
        if output_path is not None and output_path.is_dir():
            parser.error("--output must point to a file, not a directory, when a single file mode is active.")
        if file_modes[0] == "gif":
            output_path = output_path or Path("movie.gif")
            if output_path.suffix and output_path.suffix.lower() != ".gif":
                parser.error("GIF outputs must end with .gif.")
            gif_path = output_path.with_suffix(".gif").resolve()
        else:
            expected_suffix = f".{image_format}"
            output_path = output_path or Path(f"frame_final{expected_suffix}")
            if output_path.suffix and output_path.suffix.lower() != expected_suffix:
                parser.error(f"--output extension {output_path.suffix} does not match --format {image_format}.")
            image_path = output_path.with_suffix(expected_suffix).resolve()
    else:
        base_dir = Path(opt.output).expanduser() if opt.output else Path.cwd()
        if base_dir.exists() and not base_dir.is_dir():
            parser.error("--output must be a directory when both gif and image modes are active.")
        gif_path = (base_dir / "movie.gif").resolve()
        image_path = (base_dir / f"frame_final.{image_format}").resolve()

    return OutputConfig(
        modes=tuple(modes),
        gif_path=gif_path,
        image_path=image_path,
        frame_dir=frame_dir,
        image_format=image_format,
    )


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def write_single_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=_pil_format_name(image_format))


def write_frame_sequence(
    image: PIL.Image.Image,
    frame_dir: Path,
    index: int,
    digits: int,
    image_format: str,
) -> Path:
    """Persist a frame in a numbered sequence inside ``frame_dir``."""

    frame_path = frame_dir / f"frame{index:0{digits}d}.{image_format}"
    frame_dir.mkdir(parents=True, exist_ok=True)
    image.save(str(frame_path), format=_pil_format_name(image_format))
    return frame_path


@dataclass
class OutputWriters:
    config: OutputConfig
    frame_digits: int

    def __post_init__(self) -> None:
        self._gif_writer: Any = None
        if "gif" in self.config.modes and self.config.gif_path is not None:
            self.config.gif_path.parent.mkdir(parents=True, exist_ok=True)
            self._gif_writer = imageio.get_writer(str(self.config.gif_path), mode='I', duration=0.1, loop=0)

    def write_frame(self, frame_index: int, frame_array: np.ndarray) -> None:
        if self._gif_writer is not None:
            self._gif_writer.append_data(frame_array)
        if "frames" in self.config.modes and self.config.frame_dir is not None:
            write_frame_sequence(
                PIL.Image.fromarray(frame_array),
                self.config.frame_dir,
                frame_index,
                self.frame_digits,
                self.config.image_format,
            )

    def finalize(self, final_array: np.ndarray | None) -> None:
        if "image" in self.config.modes and final_array is not None and self.config.image_path is not None:
            write_single_image(PIL.Image.fromarray(final_array), self.config.image_path, self.config.image_format)

    def close(self) -> None:
        if self._gif_writer is not None:
            self._gif_writer.close()
            self._gif_writer = None


def describe(viewpoint: Viewpoint) -> str:
    center_x = DoubleDouble.from_fraction(viewpoint.center_x)
    center_y = DoubleDouble.from_fraction(viewpoint.center_y)
    half_width = DoubleDouble.from_fraction(viewpoint.half_width)
    return f"center=({center_x}, {center_y}) half-width={half_width}"


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if opt.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    output_config = resolve_output_config(opt, parser)

    if opt.x_res <= 0 or opt.y_res <= 0:
        parser.error("--x-res and --y-res must be positive.")
    if opt.max_iterations <= 0:
        parser.error("--max-iterations must be positive.")
    if opt.workers <= 0:
        parser.error("--workers must be positive.")
    if opt.frames <= 0:
        parser.error("--frames must be positive.")

    try:
        viewpoint = Viewpoint(opt.x_center, opt.y_center, opt.half_width)
    except (ValueError, ZeroDivisionError) as exc:
        parser.error(f"Invalid viewpoint: {exc}")

    try:
        planner = ZoomPlanner(opt.x_res, opt.y_res, Fraction(opt.zoom_factor))
    except (ValueError, ZeroDivisionError) as exc:
        parser.error(f"Invalid zoom factor: {exc}")

    if opt.colormap == 'classic':
        palette = classic_palette
    else:
        try:
            palette = colormap_palette(opt.colormap, opt.period)
        except ValueError as exc:
            parser.error(str(exc))

    current_field = None

    def render(frame_viewpoint: Viewpoint) -> np.ndarray:
        nonlocal current_field
        field = select_field(frame_viewpoint) if opt.field == 'auto' else opt.field
        if field != current_field:
            logger.info("Switch to %s", field)
            current_field = field
        params = RenderParameters(
            width=opt.x_res,
            height=opt.y_res,
            viewpoint=frame_viewpoint,
            max_iterations=opt.max_iterations,
            field=field,
            engine=opt.engine,
            workers=opt.workers,
        )
        return render_frame(params).steps

    frame_digits = max(3, len(str(max(opt.frames - 1, 0))))
    writers = OutputWriters(output_config, frame_digits=frame_digits)
    final_array: np.ndarray | None = None

    try:
        for i, (frame_viewpoint, steps) in enumerate(planner.path(viewpoint, opt.frames, render)):
            print("frame {0} out of {1}".format(i, opt.frames), end='\r')
            logger.info("frame %d: %s", i, describe(frame_viewpoint))
            final_array = colorize(steps, palette)
            writers.write_frame(i, final_array)
    finally:
        writers.close()

    writers.finalize(final_array)
    print()


if __name__ == '__main__':
    main()
