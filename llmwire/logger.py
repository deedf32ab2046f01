"""Logging utilities for llmwire."""

import logging
import sys
from typing import Optional

_LOGGER_NAME = "llmwire"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger under the library's namespace.

    Args:
        name (str, optional): Sub-logger name. Module ``__name__`` values that
            already start with ``llmwire`` are used as-is.

    Returns:
        logging.Logger: The requested logger.
    """
    if not name:
        return logging.getLogger(_LOGGER_NAME)
    if name == _LOGGER_NAME or name.startswith(f"{_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")


def setup_logging(
    level: int = logging.INFO,
    format_str: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> None:
    """
    Attach a stream handler to the library logger.

    Meant for applications and scripts; the library itself never calls it.
    Calling it more than once has no further effect.

    Args:
        level (int): Logging level.
        format_str (str): Log format string.
    """
    logger = logging.getLogger(_LOGGER_NAME)

    if any(not isinstance(h, logging.NullHandler) for h in logger.handlers):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(format_str))
    logger.addHandler(handler)
    logger.setLevel(level)


logging.getLogger(_LOGGER_NAME).addHandler(logging.NullHandler())
