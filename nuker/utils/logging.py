"""Logging setup for the CLI."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Third-party loggers that are noisy at DEBUG
NOISY_LOGGERS = ("boto3", "botocore", "urllib3")


def setup_logging(level: str = "WARNING", verbose: bool = False) -> None:
    """Configure the root logger.

    Args:
        level: Log level name for the application
        verbose: Also let AWS SDK loggers through at the same level
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    logging.basicConfig(level=numeric_level, format=LOG_FORMAT, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(numeric_level if verbose else logging.WARNING)
