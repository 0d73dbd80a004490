"""Allow ``python -m calcdoc``."""

import sys

from calcdoc.cli import main

sys.exit(main())
