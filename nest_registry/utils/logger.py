"""
Logging configuration module.
Configures logging from the LOG_LEVEL and LOG_FILE settings.
"""

import logging
import sys
from typing import Optional

from nest_registry.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 0 (silent), 1 (info), 2 (debug)
LEVEL_MAPPING = {
    0: logging.CRITICAL + 10,
    1: logging.INFO,
    2: logging.DEBUG,
}


def resolve_level(verbosity: int) -> int:
    """Map a LOG_LEVEL verbosity to a stdlib logging level."""
    return LEVEL_MAPPING.get(verbosity, logging.CRITICAL + 10)


def setup_logging(verbosity: Optional[int] = None, log_file: Optional[str] = None):
    """
    Configure the root logger.

    Args:
        verbosity: Overrides settings.log_level when given
        log_file: Overrides settings.log_file when given; empty means stderr
    """
    if verbosity is None:
        verbosity = settings.log_level
    if log_file is None:
        log_file = settings.log_file

    log_level = resolve_level(verbosity)
    root = logging.getLogger()
    root.setLevel(log_level)

    if log_file:
        handler = logging.FileHandler(log_file, mode="a")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)

    logger = logging.getLogger(__name__)
    if verbosity > 0:
        logger.info(f"Logging configured at level {verbosity}")
    return handler
