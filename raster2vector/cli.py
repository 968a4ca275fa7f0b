"""Command-line converter: raster image → pixel-exact SVG.

Runs the full pipeline for one file:
    1. Parse and validate options (CLI flags > YAML config > defaults)
    2. Decode the input raster (Pillow)
    3. Vectorize: one polygon per pixel, row-major
    4. Save the SVG atomically

Refactored architecture:
    - convert_main(options, report) → dict
        * Callable function (used by batch scripts and tests)
        * Raises DecodeError / SaveError
    - main(argv) → exit code; CLI entry point

CLI:
    raster2vector sprite.png
    raster2vector -i sprite.png -o out/sprite.svg --scale 4 --stroke-width 0
    raster2vector sprite.png --config configs/raster2vector.v1.yaml --log-level DEBUG

Exit codes:
    0  success, or --help
    1  invalid options/config, decode failure, save failure

The conversion narrative (file names, image size, timing) goes to stdout;
diagnostic logging goes to stderr and the optional log file.
"""

import argparse
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from . import __version__
from .data_pipeline.raster_buffer import DecodeError, RasterBuffer
from .data_pipeline.vectorizer import vectorize_with_options
from .utils import logging_config, profiler, validators
from .utils.svg_document import SaveError

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that shows the full help and exits 1 on bad arguments."""

    def error(self, message: str):
        self.print_help(sys.stderr)
        self.exit(1, f"\n{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="raster2vector",
        description="Convert a raster image to an SVG with one filled square per pixel.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Input raster image (same as -i)",
    )
    parser.add_argument(
        "-i", "--input-file",
        type=str,
        help="Name of input file, a raster image (the \"-i\" is optional)",
    )
    parser.add_argument(
        "-o", "--output-file",
        type=str,
        help="Name of output SVG file (default: input file with .svg extension)",
    )
    parser.add_argument(
        "-s", "--scale",
        type=float,
        help=f"Output units per pixel, > 0 (default: {validators.DEFAULT_SCALE})",
    )
    parser.add_argument(
        "-w", "--stroke-width",
        type=float,
        help=f"Width of the outline of every pixel, >= 0 (default: {validators.DEFAULT_STROKE_WIDTH})",
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        help="YAML config (schema raster2vector.v1) with defaults and logging settings",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=validators.LOG_LEVELS,
        help="Log level for stderr/log file (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Also write logs to this file",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=None,
        help="Write the log file as JSON lines",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def resolve_options(
    parser: argparse.ArgumentParser,
    args: argparse.Namespace,
    config: Optional[validators.ConvertConfigV1] = None,
) -> validators.ConvertOptions:
    """Turn parsed arguments into validated ConvertOptions.

    Raises
    ------
    SystemExit
        With code 1 (via parser.error) when the input file is missing or given
        twice
    ConfigError
        When scale/stroke width/paths fail validation
    """
    if args.input and args.input_file:
        parser.error("input file given both positionally and with -i/--input-file")
    input_file = args.input_file or args.input
    if not input_file:
        parser.error("an input file is required")

    return validators.build_convert_options(
        input_file,
        output_file=args.output_file,
        scale=args.scale,
        stroke_width=args.stroke_width,
        config=config,
    )


def _logging_kwargs(
    args: argparse.Namespace,
    config: Optional[validators.ConvertConfigV1],
) -> Dict[str, Any]:
    logging_cfg = config.logging if config is not None else validators.LoggingConfigV1()
    kwargs = logging_cfg.setup_kwargs()
    if args.log_level is not None:
        kwargs['log_level'] = args.log_level
    if args.log_file is not None:
        kwargs['log_file'] = args.log_file
    if args.log_json is not None:
        kwargs['json'] = args.log_json
    return kwargs


def _log_timing(name: str, elapsed: float) -> None:
    logger.debug("%s took %.3f s", name, elapsed)


def convert_main(
    options: validators.ConvertOptions,
    report: Optional[Callable[[str], None]] = None,
) -> Dict[str, Any]:
    """Convert one raster file to SVG.

    Parameters
    ----------
    options : ConvertOptions
        Validated input/output paths, scale and stroke width
    report : Optional[Callable[[str], None]]
        Sink for the conversion narrative; print when None

    Returns
    -------
    Dict[str, Any]
        Results dict with:
            - output_path: str
            - width, height, channels: int (input raster)
            - polygon_count: int

    Raises
    ------
    DecodeError
        Input can't be decoded; nothing is written
    SaveError
        Output can't be written; an existing output file is left as it was
    """
    if report is None:
        report = print

    report(f"Converting {options.input_file} to {options.output_file}.")
    report("Loading input image...")

    logging_config.push_context(
        input=options.input_file.name, output=options.output_file.name
    )
    try:
        with profiler.timer("decode", sink=_log_timing):
            buffer = RasterBuffer.from_file(options.input_file)

        report(
            f"Image is {buffer.width}x{buffer.height}, "
            f"with {buffer.channels} color channels."
        )
        width, height, channels = buffer.width, buffer.height, buffer.channels

        doc = vectorize_with_options(buffer, options, report=report)
        buffer.release()

        report("SVG paths generated.  Writing output .svg file...")
        with profiler.timer("save", sink=_log_timing):
            doc.save()
    finally:
        logging_config.pop_context(keys=["input", "output"])

    logger.info("Wrote %s (%d polygons)", options.output_file, len(doc))
    report("Completed successfully.")

    return {
        'output_path': str(options.output_file),
        'width': width,
        'height': height,
        'channels': channels,
        'polygon_count': len(doc),
    }


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point; returns the process exit code."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        config = validators.load_convert_config(args.config) if args.config else None
        options = resolve_options(parser, args, config)
    except SystemExit as e:
        # --help/--version exit 0, argument errors exit 1
        return e.code if isinstance(e.code, int) else 0
    except (validators.ConfigError, FileNotFoundError) as e:
        parser.print_help(sys.stderr)
        print(f"\n{parser.prog}: error: {e}", file=sys.stderr)
        return 1

    logging_config.setup_logging(
        **_logging_kwargs(args, config),
        quiet_libs=["PIL"],
        context={"app": "raster2vector"},
    )
    logging_config.install_excepthook()

    try:
        convert_main(options)
    except DecodeError as e:
        logger.error("Decoding %s failed: %s", e.path, e.reason)
        print(f"Failed to load input image: {e.reason}")
        return 1
    except SaveError as e:
        logger.error("Saving %s failed: %s", options.output_file, e)
        print("File output failed!")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
