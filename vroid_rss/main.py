"""
Main entry point for VroidRSS.

Loads the configuration, starts the background loop and runs the
main window until it is closed.
"""

import argparse
import logging
import sys

import coloredlogs

from vroid_rss.app_state import AppState
from vroid_rss.config import ConfigIOError, ConfigStore
from vroid_rss.ui import MainWindow
from vroid_rss.worker import BackgroundLoop

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """
    Configure application logging.

    Parameters
    ----------
    verbose : bool
        If True, set log level to DEBUG.
    """
    level = logging.DEBUG if verbose else logging.INFO

    coloredlogs.install(
        level=level,
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        description="Read RSS feeds aloud through an external executable",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def run(store: ConfigStore) -> int:
    """
    Run the application until the main window closes.

    Parameters
    ----------
    store : ConfigStore
        Store holding the user's configuration.

    Returns
    -------
    int
        Process exit code: 0 on normal exit, 1 after a fatal error.
    """
    try:
        config = store.load()
    except ConfigIOError as e:
        logger.error("Failed to load configuration: %s", e)
        return 1

    loop = BackgroundLoop()
    loop.start()

    exit_code = 0
    try:
        window = MainWindow(AppState(store, config, loop))
        window.mainloop()
        exit_code = window.exit_code
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        loop.stop()

    return exit_code


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    logger.info("Starting VroidRSS")
    sys.exit(run(ConfigStore()))


if __name__ == "__main__":
    main()
