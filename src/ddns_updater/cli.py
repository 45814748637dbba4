"""
CLI entry point for DDNS Updater.

This module provides the command-line interface for starting the daemon.
"""

from __future__ import annotations

import logging
import sys

from ddns_updater.config import ConfigValidationError, load_config, parse_args
from ddns_updater.daemon import start_daemon
from ddns_updater.exceptions import DDNSError
from ddns_updater.logging_config import setup_logging


logger = logging.getLogger("ddns_updater")


def main() -> None:
    """
    Start the DDNS Updater daemon.

    Parse command-line arguments, load configuration, and run the updater
    until it is asked to terminate.
    """
    args = parse_args()
    try:
        config = load_config(args)
    except ConfigValidationError as e:
        print(e, file=sys.stderr)  # noqa: T201
        sys.exit(1)

    setup_logging(config.logging, secrets=config.secret_values())

    try:
        start_daemon(config)
    except DDNSError as e:
        logger.critical("Updater failed: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
