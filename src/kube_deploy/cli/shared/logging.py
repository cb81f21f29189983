"""Loguru sink configuration for the CLI."""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | {message}"


def configure_logging(verbose: bool = False) -> None:
    """Route engine logs to stderr; DEBUG when verbose, INFO otherwise."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO", format=LOG_FORMAT)
