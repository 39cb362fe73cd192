"""
Core Package - Configuration, logging and error handling
"""

from .config import Settings, ControlTokens, get_settings
from .logging import get_logger, setup_logging, LoggerMixin

__all__ = [
    "Settings",
    "ControlTokens",
    "get_settings",
    "get_logger",
    "setup_logging",
    "LoggerMixin",
]
