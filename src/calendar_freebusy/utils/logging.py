"""Logging setup for free/busy lookups."""

import logging
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "calendar_freebusy"

_FORMATS = {
    "console": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    "file": "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s",
}


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure the package logger.

    Console output follows the requested level, the optional log file always
    receives DEBUG records with source locations.

    Args:
        level: Console logging level name
        log_file: Optional log file path, parent directories are created

    Returns:
        The package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    console_level = _level(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(_FORMATS["console"]))
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FORMATS["file"]))
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG if log_file else console_level)
    return logger
