"""
Process entry point: `python -m catalog` or the `catalog-api` console script.

Runs the lifecycle coordinator and exits 0 after a clean shutdown, 1 if
startup or shutdown failed.
"""

import asyncio
import sys

from catalog.lifecycle import LifecycleCoordinator
from catalog.main import app, setup_logging


def main() -> None:
    settings = app.state.settings
    setup_logging(settings)

    coordinator = LifecycleCoordinator(app, settings, app.state.database)
    result = asyncio.run(coordinator.run())
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()
