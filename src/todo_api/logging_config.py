"""
Logging configuration
"""
from __future__ import annotations

import logging
import sys

from .settings import get_settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# PUBLIC_INTERFACE
def get_logger(name: str) -> logging.Logger:
    """Get a logger writing to stdout at the configured LOG_LEVEL."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)

    level = logging.getLevelName(get_settings().log_level)
    logger.setLevel(level if isinstance(level, int) else logging.INFO)
    return logger
