"""Allow ``python -m runner_coordinator``."""

import sys

from runner_coordinator.cli import main

sys.exit(main())
