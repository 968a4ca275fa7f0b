"""Raster decoding and pixel vectorization.

Modules:
    - raster_buffer: Owned 8-bit pixel buffer, Pillow decode, RGB/RGBA access
      and format conversion for 1-4 channel images
    - vectorizer: Row-major scan emitting one unit-square polygon per pixel

Workflow:
    1. RasterBuffer.from_file(path) → buffer (DecodeError on failure)
    2. vectorize(buffer, scale, stroke_width, output_path) → VectorDocument
    3. VectorDocument.save() (utils.svg_document)

Output is deterministic: the same buffer and options always give the same
document, whatever the timing messages say.
"""

from .raster_buffer import RGB, RGBA, DecodeError, PixelFormat, RasterBuffer
from .vectorizer import iter_pixel_polygons, vectorize, vectorize_with_options

__all__ = [
    'RGB',
    'RGBA',
    'DecodeError',
    'PixelFormat',
    'RasterBuffer',
    'iter_pixel_polygons',
    'vectorize',
    'vectorize_with_options',
]
