"""Core utilities for the bucketgate application."""

from bucketgate.app.core.config import Settings, settings
from bucketgate.app.core.logging import get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "get_logger",
    "setup_logging",
]
