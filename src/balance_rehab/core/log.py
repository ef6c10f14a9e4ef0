"""Logging setup shared by the CLI and long-running services."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure the ``balance_rehab`` logger hierarchy.

    Args:
        level: Log level name. Defaults to the configured ``logging.level``.

    Returns:
        The package root logger.
    """
    if level is None:
        from .config import get_settings

        level = get_settings().logging.level

    logger = logging.getLogger("balance_rehab")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid duplicate handlers on repeated setup
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    return logger
