"""Allow ``python -m raster2vector``."""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
