"""Allow ``python -m cutsvg``."""

import sys

from .app import main

sys.exit(main())
