"""Logging configuration for the application."""
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import settings


def setup_logging(name: str = None, log_dir: Optional[str] = None) -> logging.Logger:
    """Set up logging configuration.

    Args:
        name: Name of the logger. If None, creates a root logger.
        log_dir: Directory for the rotating log file. Falls back to
            ``settings.LOG_DIR``; when neither is set only the console
            handler is attached.

    Returns:
        Configured logger instance.
    """
    formatter = logging.Formatter(settings.LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logger = logging.getLogger(name)
    logger.setLevel(settings.LOG_LEVEL.upper())

    # Add handlers if they haven't been added before
    if not logger.handlers:
        logger.addHandler(console_handler)

        target_dir = log_dir or settings.LOG_DIR
        if target_dir:
            path = Path(target_dir)
            path.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                path / "bullwhip.log", maxBytes=5 * 1024 * 1024, backupCount=5, encoding="utf-8"
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    # Prevent logging from propagating to the root logger
    logger.propagate = False

    return logger
