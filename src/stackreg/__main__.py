"""Allow ``python -m stackreg``."""

import sys

from stackreg.cli import main

sys.exit(main())
