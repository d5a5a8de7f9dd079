"""Logging helpers shared by the service, engine and client layers."""

import logging
import os
from logging import Logger
from typing import Optional

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str, level: Optional[str] = None, *, log_file: Optional[str] = None) -> Logger:
    """Return a configured logger.

    Handlers are attached once per logger name. The level and optional file
    default to the LOG_LEVEL / LOG_FILE environment variables, so this can be
    used before settings are loaded.

    Args:
        name: Logger name (typically __name__)
        level: Logging level name, e.g. "INFO"
        log_file: Optional path to a file to also write logs to.
    """
    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    log_file = log_file or os.getenv("LOG_FILE")

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        fmt = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)

        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(fmt)
        logger.addHandler(console)

        if log_file:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(fmt)
            logger.addHandler(file_handler)

    return logger
