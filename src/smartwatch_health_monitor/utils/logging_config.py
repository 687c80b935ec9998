"""
Logging setup for the CLI and the Google client libraries it drives.

Application records go to stderr (so command output on stdout stays clean)
and optionally to a log file. Chatty third-party loggers are capped at their
own level.
"""

import logging
import sys
from pathlib import Path

from smartwatch_health_monitor.utils.parameters import LoggingConfig


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: LoggingConfig, logger_name: str | None = None) -> logging.Logger:
    """
    Configure the application logger.

    Existing handlers are replaced, so calling this once per CLI command is
    safe.

    Args:
        config: Logging configuration.
        logger_name: Logger to configure; the root logger if None.

    Returns:
        The configured logger.
    """
    level = getattr(logging, config.level.upper())
    formatter = logging.Formatter(config.format)

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.handlers.clear()

    if config.console:
        logger.addHandler(_handler(logging.StreamHandler(sys.stderr), level, formatter))

    if config.file:
        log_file = Path(config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(
            _handler(logging.FileHandler(log_file, encoding="utf-8"), level, formatter)
        )

    for name, quiet_level in config.library_levels.items():
        logging.getLogger(name).setLevel(getattr(logging, quiet_level.upper()))

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a module logger (``get_logger(__name__)``)."""
    return logging.getLogger(name)
