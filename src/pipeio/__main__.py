"""Allow ``python -m pipeio``."""

import sys

from .cli import main

sys.exit(main())
