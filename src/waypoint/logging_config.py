"""Logging setup for the CLI and server."""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", format: str = LOG_FORMAT, date_format: str = LOG_DATE_FORMAT) -> None:
    """Send ``waypoint`` log records to stdout at *level*.

    Only the ``waypoint`` logger is touched, so an embedding application's
    own logging setup is left alone.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(format, date_format))

    package_logger = logging.getLogger("waypoint")
    package_logger.setLevel(level.upper())
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.propagate = False
