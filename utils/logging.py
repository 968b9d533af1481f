"""
Logging setup: one stdout handler per named logger, pipe-separated fields.
"""

import logging
import shlex
import sys
from typing import List, Optional, Union

from config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Filter graphs can run to a few kilobytes; keep log lines readable
MAX_LOGGED_ARG = 160


def _stdout_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def get_logger(name: str, level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (usually __name__)
        level: Optional level override; LOG_LEVEL from settings otherwise

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.addHandler(_stdout_handler())

    logger.setLevel(level or settings.LOG_LEVEL.upper())
    return logger


def log_with_context(logger: logging.Logger, level: int, message: str, **context):
    """Log `message` followed by ` | key=value` for every context entry."""
    parts = [message] + [f"{key}={value}" for key, value in context.items()]
    logger.log(level, " | ".join(parts))


def format_command(cmd: List[str]) -> str:
    """Shell-quoted command line for logs, with very long arguments shortened."""
    shown = [
        arg if len(arg) <= MAX_LOGGED_ARG else arg[:MAX_LOGGED_ARG] + "..."
        for arg in cmd
    ]
    return shlex.join(shown)
