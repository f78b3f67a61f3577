"""Shared logging helpers for pathfinder modules."""

from __future__ import annotations

import logging


def verbosity_to_level(verbosity: int) -> int:
    """Map a small verbosity integer to a logging level."""
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def configure_logging(verbosity: int) -> logging.Logger:
    level = verbosity_to_level(verbosity)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    root.setLevel(level)
    logger = logging.getLogger("pathfinder")
    logger.setLevel(level)
    return logger
