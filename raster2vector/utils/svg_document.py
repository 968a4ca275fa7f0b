"""SVG document writer: pixel polygons → .svg file.

Wraps ``svgwrite.Drawing`` with the layout used by the converter:
    - Geometry stays in unit pixel cells (top-left origin, +Y down)
    - The scale factor lives in the layout: the root element is
      ``scale*W`` × ``scale*H`` with a ``0 0 W H`` viewBox, so integer cell
      corners are written exactly and the stroke width scales with the cells
    - Polygons are appended in emission order; later shapes paint on top
    - save() serializes once and writes atomically (fs.atomic_write_text)

Fill model: an RGB triple, or None for "no fill". The writer has no partial
alpha; callers collapse alpha before building a Polygon.

Public API:
    doc = VectorDocument("out.svg", Layout(width=32, height=32, scale=10.0))
    doc.append(Polygon(vertices=..., fill=(255, 0, 0), stroke_width=0.01))
    doc.save()
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

import svgwrite

from . import fs

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]
Point = Tuple[int, int]

BLACK: RGB = (0, 0, 0)
NO_FILL = "none"


class SaveError(RuntimeError):
    """The SVG document could not be written to its target path."""


@dataclass(frozen=True, slots=True)
class Polygon:
    """Closed polygon (implicitly closed back to the first vertex).

    Attributes
    ----------
    vertices : tuple[Point, ...]
        Vertices in unit-cell coordinates, in drawing order
    fill : Optional[RGB]
        Fill color, or None for a transparent (unfilled) shape
    stroke_width : float
        Outline width in unit-cell coordinates
    stroke_color : RGB
        Outline color, default black
    """
    vertices: Tuple[Point, ...]
    fill: Optional[RGB]
    stroke_width: float
    stroke_color: RGB = BLACK


@dataclass(frozen=True, slots=True)
class Layout:
    """Output coordinate space: unit grid of ``width`` × ``height`` cells, scaled."""
    width: int
    height: int
    scale: float

    def __post_init__(self):
        if self.width < 1 or self.height < 1:
            raise ValueError(f"Layout needs at least one cell, got {self.width}x{self.height}")
        if not self.scale > 0:
            raise ValueError(f"Layout scale must be > 0, got {self.scale}")

    @property
    def canvas_size(self) -> Tuple[float, float]:
        """Rendered document size in output units."""
        return (self.scale * self.width, self.scale * self.height)


def svg_color(color: Optional[RGB]) -> str:
    """Format a fill/stroke color; None → 'none'."""
    if color is None:
        return NO_FILL
    r, g, b = color
    return svgwrite.rgb(r, g, b)


class VectorDocument:
    """Accumulates polygons and saves them as one SVG file.

    Parameters
    ----------
    path : Union[str, Path]
        Target .svg path (written only by save())
    layout : Layout
        Cell grid and scale of the output
    """

    def __init__(self, path: Union[str, Path], layout: Layout):
        self.path = Path(path)
        self.layout = layout
        self._count = 0

        canvas_w, canvas_h = layout.canvas_size
        # debug=False skips per-attribute validation on every add()
        self._drawing = svgwrite.Drawing(
            str(self.path), size=(canvas_w, canvas_h), profile='full', debug=False
        )
        self._drawing.viewbox(0, 0, layout.width, layout.height)

    def __len__(self) -> int:
        return self._count

    def append(self, polygon: Polygon) -> None:
        """Add a polygon on top of everything appended so far."""
        self._drawing.add(self._drawing.polygon(
            points=list(polygon.vertices),
            fill=svg_color(polygon.fill),
            stroke=svg_color(polygon.stroke_color),
            stroke_width=polygon.stroke_width,
        ))
        self._count += 1

    def extend(self, polygons: Iterable[Polygon]) -> None:
        for polygon in polygons:
            self.append(polygon)

    def tostring(self) -> str:
        """Serialize the whole document (XML declaration included)."""
        buf = io.StringIO()
        self._drawing.write(buf)
        return buf.getvalue()

    def save(self) -> None:
        """Write the document to ``self.path`` atomically.

        Raises
        ------
        SaveError
            If the file can't be written; an existing file at ``path`` is left
            untouched.
        """
        text = self.tostring()
        try:
            fs.atomic_write_text(self.path, text)
        except RuntimeError as e:
            raise SaveError(str(e)) from e
        logger.debug("Wrote %d polygons (%d bytes) to %s", self._count, len(text), self.path)
