"""Logging configuration helpers for the live quiz application."""

from __future__ import annotations

import logging
from logging import Logger


def configure_logging(level: str | int = logging.INFO) -> Logger:
    """Configure basic logging for the application and return the package logger."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logger = logging.getLogger("livequiz")
    logger.setLevel(level)
    return logger
