"""Allow ``python -m depot_reports``."""

import sys

from .cli import main

sys.exit(main())
