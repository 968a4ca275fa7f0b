"""Pixel vectorization: RasterBuffer → one filled unit square per pixel.

Scan order is row-major (row 0 left→right, then row 1, ...). The order fixes
paint order in the output and must not change, so the same buffer always
produces the same document.

Per pixel (row, col):
    1. Read RGBA (RasterBuffer.rgba_row expands any channel count)
    2. Collapse alpha: a < 255 → no fill; a == 255 → fill (r, g, b)
    3. Polygon (col,row) → (col+1,row) → (col+1,row+1) → (col,row+1),
       clockwise in the top-left-origin, +Y-down frame, black outline
    4. Append to the document immediately

Alpha collapse is binary on purpose: the SVG writer has no partial alpha, so a
half-transparent pixel is dropped rather than drawn at full strength.

Coordinates stay in unit cells; the document layout applies ``scale``.

Timing: row 0 is timed and extrapolated (profiler.RowEstimateTimer). Slow
scans report an estimate up front and the deviation at the end; fast scans
report the duration in ms. Messages go to ``report`` (default: print).

Public API:
    vectorize(buffer, scale, stroke_width, output_path) → VectorDocument
    vectorize_with_options(buffer, options) → VectorDocument
    iter_pixel_polygons(buffer, stroke_width) → Iterator[Polygon]
"""

import logging
import time
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, Union

from ..utils.profiler import RowEstimateTimer
from ..utils.svg_document import RGB, Layout, Point, Polygon, VectorDocument
from ..utils.validators import ConvertOptions
from .raster_buffer import OPAQUE, RasterBuffer

logger = logging.getLogger(__name__)


def pixel_fill(rgba: Sequence[int]) -> Optional[RGB]:
    """Fill for one pixel: its (r, g, b) if fully opaque, else None."""
    r, g, b, a = rgba
    if a < OPAQUE:
        return None
    return (int(r), int(g), int(b))


def unit_cell(row: int, col: int) -> Tuple[Point, Point, Point, Point]:
    """Corners of the pixel's unit cell: TL, TR, BR, BL."""
    return ((col, row), (col + 1, row), (col + 1, row + 1), (col, row + 1))


def pixel_polygon(row: int, col: int, rgba: Sequence[int], stroke_width: float) -> Polygon:
    """Unit-cell polygon for the pixel at (row, col), filled per the alpha rule."""
    return Polygon(
        vertices=unit_cell(row, col),
        fill=pixel_fill(rgba),
        stroke_width=stroke_width,
    )


def row_polygons(buffer: RasterBuffer, row: int, stroke_width: float) -> List[Polygon]:
    """Polygons of one row, left to right."""
    return [
        pixel_polygon(row, col, rgba, stroke_width)
        for col, rgba in enumerate(buffer.rgba_row(row).tolist())
    ]


def iter_pixel_polygons(buffer: RasterBuffer, stroke_width: float) -> Iterator[Polygon]:
    """All pixel polygons in row-major order."""
    for row in range(buffer.height):
        yield from row_polygons(buffer, row, stroke_width)


def vectorize(
    buffer: RasterBuffer,
    scale: float,
    stroke_width: float,
    output_path: Union[str, Path] = "output.svg",
    report: Optional[Callable[[str], None]] = None,
    clock: Optional[Callable[[], float]] = None,
) -> VectorDocument:
    """Build an SVG document with one polygon per pixel.

    Parameters
    ----------
    buffer : RasterBuffer
        Decoded image (width, height >= 1)
    scale : float
        Output units per pixel (> 0), applied by the document layout
    stroke_width : float
        Outline width of every polygon (>= 0)
    output_path : Union[str, Path]
        Where the returned document saves to
    report : Optional[Callable[[str], None]]
        Sink for the timing messages; print when None
    clock : Optional[Callable[[], float]]
        Monotonic clock in seconds (tests inject a fake one)

    Returns
    -------
    VectorDocument
        ``width * height`` polygons in row-major order, not yet saved

    Notes
    -----
    scale/stroke_width are assumed validated (ConvertOptions); the buffer is
    only read.
    """
    if report is None:
        report = print

    layout = Layout(width=buffer.width, height=buffer.height, scale=scale)
    doc = VectorDocument(output_path, layout)

    estimator = RowEstimateTimer(buffer.height, clock=clock or time.perf_counter)
    estimator.start()

    for row in range(buffer.height):
        doc.extend(row_polygons(buffer, row, stroke_width))

        message = estimator.row_done(row)
        if message:
            report(message)

    report(estimator.finish())
    logger.debug(
        "Vectorized %dx%d raster into %d polygons (%r)",
        buffer.width, buffer.height, len(doc), estimator
    )
    return doc


def vectorize_with_options(
    buffer: RasterBuffer,
    options: ConvertOptions,
    report: Optional[Callable[[str], None]] = None,
) -> VectorDocument:
    """vectorize() driven by a validated ConvertOptions."""
    return vectorize(
        buffer,
        scale=options.scale,
        stroke_width=options.stroke_width,
        output_path=options.output_file,
        report=report,
    )
