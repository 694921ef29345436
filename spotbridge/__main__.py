"""Allow ``python -m spotbridge``."""

import sys

from .cli import main


sys.exit(main())
