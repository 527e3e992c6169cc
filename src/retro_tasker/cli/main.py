# src/retro_tasker/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState (loading the persisted organizer), then
runs the console REPL in the main thread. Both blobs are written again on exit.
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_initial_state, save_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    log_file = setup_logging(log_dir=settings.data_dir, console_level=settings.log_level)

    logger.info("Starting %s (db=%s, log=%s)", settings.app_name, settings.db_path, log_file)
    state = create_initial_state(settings=settings)

    try:
        run_console_loop(state)
    finally:
        save_state(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
