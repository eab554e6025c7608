"""
Core Module

Provides foundational utilities used across the application:
- Configuration management
- Logging setup
"""

from .config import (
    MIN_SECRET_LENGTH,
    Settings,
    check_token_secret,
    get_settings,
)
from .logger import get_logger, log_token, set_log_level, setup_logging

__all__ = [
    # Config
    "Settings",
    "MIN_SECRET_LENGTH",
    "get_settings",
    "check_token_secret",
    # Logging
    "setup_logging",
    "get_logger",
    "set_log_level",
    "log_token",
]
