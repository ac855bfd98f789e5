"""Logging setup for spacelens."""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_MAX_BYTES = 1024 * 1024
LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def debug_enabled() -> bool:
    return os.environ.get("SPACELENS_DEBUG") == "1"


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> logging.Logger:
    """
    Configure the ``spacelens`` logger.

    Console output goes to stderr through rich; the optional log file
    always records debug detail and rotates once it reaches 1 MB.

    Args:
        verbose: Show debug messages on the console
        log_file: Path of the rotating log file, or None

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("spacelens")
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_level = logging.DEBUG if verbose or debug_enabled() else logging.WARNING
    console_handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        show_time=False,
    )
    console_handler.setLevel(console_level)
    logger.addHandler(console_handler)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file, maxBytes=LOG_MAX_BYTES, backupCount=1, encoding="utf-8"
            )
        except OSError as e:
            logger.warning("Failed to open log file %s: %s", log_file, e)
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(file_handler)

    logger.propagate = False
    return logger
