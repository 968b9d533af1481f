"""Utility modules for the audio nodes."""

from .tempfiles import TempFileSet
from .retry import async_retry, RetryableError
from .logging import get_logger

__all__ = ["TempFileSet", "async_retry", "RetryableError", "get_logger"]
