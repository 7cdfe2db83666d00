"""
Logging setup for the ticket printing service.

Log Format:
    2026-10-18 13:05:30 [INFO    ] [Thread-3] cafe_pos.printer.coordinator - Delivering 'customer' (212 bytes)

Usage:
    # At application startup (done by create_app)
    setup_logging(log_level="INFO", log_dir=None)

    # In modules
    logger = logging.getLogger(__name__)
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "cafe_pos"


def setup_logging(log_level: Union[int, str] = logging.INFO,
                  log_dir: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Configure the package logger.

    Sets up a console handler and, when ``log_dir`` is given, a rotating
    file handler. Calling it again replaces the handlers.

    Args:
        log_level: Minimum log level, as a number or a name like "DEBUG"
        log_dir: Directory for cafe_pos.log (file logging off when None)

    Returns:
        The configured package logger
    """
    if isinstance(log_level, str):
        log_level = logging.getLevelName(log_level.upper())

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    # Format: timestamp [level] [thread_name] logger_name - message
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)-8s] [%(threadName)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_dir / f"{LOGGER_NAME}.log",
            maxBytes=5 * 1024 * 1024,  # 5 MB per file
            backupCount=3,
            encoding="utf-8"
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.info("File logging enabled: %s", log_dir)

    logger.debug("Logging configured at level %s", logging.getLevelName(log_level))
    return logger
