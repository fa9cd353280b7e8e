"""Allow running as python -m repocrypt."""

import sys

from .cli import main

sys.exit(main())
