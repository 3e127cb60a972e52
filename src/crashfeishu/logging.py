"""Logging configuration for the crashfeishu event listener.

stdout belongs to the supervisor protocol, so log output goes to stderr
(which supervisord captures into the listener's stderr_logfile) and,
optionally, to a file.
"""

import logging
import sys
from pathlib import Path

from crashfeishu.config import Config

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Module-level logger cache
_logger: logging.Logger | None = None


def setup_logging(config: Config, level: str | None = None) -> logging.Logger:
    """Set up logging based on configuration.

    Args:
        config: Configuration object with log settings.
        level: Level name overriding config.log_level (the --log-level option).

    Returns:
        Configured logger instance.
    """
    global _logger

    # Return existing logger if already set up (idempotent)
    if _logger is not None:
        return _logger

    logger = logging.getLogger("crashfeishu")
    level_name = (level or config.log_level).upper()
    logger.setLevel(LEVELS.get(level_name, logging.INFO))

    # Clear any existing handlers
    logger.handlers.clear()

    # Log format: 2025-01-27 10:30:45 [INFO] message
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    formatter.datefmt = "%Y-%m-%d %H:%M:%S"

    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Never stdout
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    if level_name not in LEVELS:
        logger.warning("Unknown log level %r, using INFO", level_name)

    _logger = logger
    return logger


def reset_logging() -> None:
    """Reset logging state. Used for testing."""
    global _logger
    if _logger is not None:
        _logger.handlers.clear()
        _logger.setLevel(logging.NOTSET)
        _logger.propagate = True
        _logger = None
