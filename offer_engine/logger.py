"""
Unified logging module
======================

Single logging entry point for the offer recognition engine.

Usage:
    from offer_engine.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Detected %d layout candidates", count)
    logger.debug("Candidate details: %s", candidate)
"""

import logging
import sys
from typing import Optional

# Default log format with timestamp, level, and module name
DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
ROOT_LOGGER_NAME = "offer_engine"

# Global flag to track if root logger has been configured
_root_configured = False


def _resolve_default_level() -> int:
    from offer_engine.config import get_settings

    return logging.getLevelName(get_settings().LOG_LEVEL)


def _configure_root_logger() -> None:
    """
    Attach a stdout handler to the package root logger.

    Runs once; guarded by the ``_root_configured`` flag.
    """
    global _root_configured
    if _root_configured:
        return

    level = _resolve_default_level()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATE_FORMAT))

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)
    root_logger.propagate = False

    _root_configured = True


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """
    Return the logger called *name*, configuring the package root on first use.

    Args:
        name: logger name, normally the caller's ``__name__``
        level: optional explicit level for this logger

    Example:
        logger = get_logger(__name__)
        logger.info("Analyzing sheet: %s", sheet_name)
    """
    _configure_root_logger()

    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def set_level(level: int, logger_name: Optional[str] = None) -> None:
    """
    Change the level of one logger, or of the package root when no name is given.

    Example:
        set_level(logging.DEBUG)  # debug for every offer_engine module
        set_level(logging.DEBUG, "offer_engine.excel.layout_detector")
    """
    logger = logging.getLogger(logger_name or ROOT_LOGGER_NAME)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
