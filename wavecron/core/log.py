"""Loguru sink setup for long-running processes."""

from __future__ import annotations

import sys

from loguru import logger

from wavecron.core.config.schema import LoggingConfig


def setup_logging(config: LoggingConfig, verbose: bool = False) -> None:
    """Replace the default stderr sink with the configured level (+ file)."""
    level = "DEBUG" if verbose else config.level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level)
    if config.file:
        logger.add(config.file, level=level, rotation=config.rotation, enqueue=True)
