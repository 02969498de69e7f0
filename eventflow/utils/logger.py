"""Logging configuration"""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Driver and crypto libraries that are chatty below WARNING
NOISY_LOGGERS = ("pymongo", "motor", "passlib", "multipart")


def setup_logger(
    name: str = "eventflow",
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """
    Configure a logger with a stdout handler and an optional file handler.

    Module loggers come from ``get_logger(__name__)`` and propagate upwards,
    so the API entry point configures the root logger by passing ``name=""``.
    Calling this again replaces the handlers instead of stacking them.

    Args:
        name: Logger name ("" for the root logger)
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown → INFO)
        log_file: Optional log file path; parent directories are created
        quiet: Library loggers raised to WARNING

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, str(log_level).upper(), logging.INFO))
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for library in quiet:
        logging.getLogger(library).setLevel(logging.WARNING)

    return logger


def get_logger(name: str = "eventflow") -> logging.Logger:
    return logging.getLogger(name)
