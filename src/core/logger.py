"""
Centralized logging configuration for screenshot_server.

Provides configured logger instances plus a helper for logging token
operations without ever exposing the token or the shared secret.
"""

import logging
import sys
from typing import Optional

# Global log level - can be controlled via environment
_log_level: Optional[int] = None


def setup_logging(level: str = "INFO") -> None:
    """
    Setup logging configuration for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    global _log_level

    # Convert string level to logging constant
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    _log_level = numeric_level

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )

    # Reduce noise from verbose libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def log_token(
    logger: logging.Logger,
    device_id: Optional[str],
    operation: str,
    success: bool,
    reason: str = "",
) -> None:
    """
    Log a token operation outcome.

    Only the device id and a short reason are written; callers must never
    pass the raw token or the secret here.

    Args:
        logger: Logger to write to
        device_id: Device the token was presented for
        operation: Token operation (validate, issue, rotate)
        success: Whether the operation succeeded
        reason: Failure reason, if any
    """
    message = f"Token {operation} for device {device_id}: {'OK' if success else 'FAILED'}"
    if reason:
        message += f" ({reason})"

    if success:
        logger.debug(message)
    else:
        logger.warning(message)


def set_log_level(level: str) -> None:
    """
    Change the log level at runtime.

    Args:
        level: New logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    global _log_level

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    _log_level = numeric_level

    logging.getLogger().setLevel(numeric_level)
