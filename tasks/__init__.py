"""Celery tasks for the audio nodes."""

from .nodes import execute_node

__all__ = [
    "execute_node",
]
