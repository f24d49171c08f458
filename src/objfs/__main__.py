"""Entry point for ``python -m objfs``."""

import sys

from objfs.cli import main

sys.exit(main())
