"""raster2vector: pixel-exact raster → SVG conversion.

Every source pixel becomes one filled unit square in the output document, so
sprites and other pixel art survive import into vector editors unchanged.

Architecture layers (strict one-way dependency):
    cli → data_pipeline/ → utils/

Key invariants:
    - Pixels are visited in row-major order; emission order is part of the output
    - Geometry is in unit pixel cells (top-left origin, +Y down); scale is applied
      by the SVG layout, never by the scan
    - Alpha is collapsed: anything not fully opaque is emitted with no fill
    - YAML-only configs
"""

__version__ = "1.0.0"
