"""Logging configuration for er-save-lib.

Every module logs through a child of the ``er_save_lib`` logger obtained
with ``get_logger``. Nothing is configured on import; applications that want
the library's own log file call ``setup_logging`` once.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from .config.paths import LibraryPaths

LOGGER_NAME = "er_save_lib"
LOG_FILE_NAME = "er_save_lib.log"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _handler(handler: logging.Handler, fmt: str, datefmt: Optional[str] = None) -> logging.Handler:
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def setup_logging(debug: bool = False, log_dir: Optional[Path] = None) -> logging.Logger:
    """Attach the library's handlers to the ``er_save_lib`` logger.

    Args:
        debug: Also echo every record to stdout
        log_dir: Directory for the log file, defaults to the config directory

    Returns:
        The library logger
    """
    log_dir = Path(log_dir) if log_dir is not None else LibraryPaths.CONFIG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Calling setup twice must not duplicate output
    for old in list(logger.handlers):
        old.close()
        logger.removeHandler(old)

    logger.addHandler(_handler(
        logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8"), FILE_FORMAT, DATE_FORMAT
    ))
    if debug:
        logger.addHandler(_handler(logging.StreamHandler(sys.stdout), CONSOLE_FORMAT))

    logger.debug("Logging to %s", log_dir / LOG_FILE_NAME)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger for one module, e.g. ``get_logger("section")``."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
