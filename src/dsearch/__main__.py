"""Allow running dsearch with ``python -m dsearch``."""

import sys

from dsearch.cli import main

sys.exit(main())
