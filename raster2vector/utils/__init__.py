"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Option/config validation (validators)
    - Atomic I/O and YAML loading (fs)
    - SVG document writing (svg_document)
    - Timing and scan-duration estimates (profiler)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (data_pipeline, cli).

Convenience imports:
    from raster2vector.utils import fs, validators, svg_document
    from raster2vector.utils.logging_config import setup_logging, get_logger
"""

from . import fs
from . import logging_config
from . import profiler
from . import svg_document
from . import validators

from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    # Modules
    'fs',
    'logging_config',
    'profiler',
    'svg_document',
    'validators',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
]
