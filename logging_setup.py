"""Logging configuration for modlist."""

import logging
import sys
from pathlib import Path

LOGGER_NAME = "modlist"


def setup_logging(
    verbosity: int = 0,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure the modlist logger; verbosity is -1 (quiet), 0 or 1 (verbose)."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    if verbosity > 0:
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    else:
        console_handler.setLevel(logging.WARNING if verbosity < 0 else logging.INFO)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Get the modlist logger, or one of its children."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)
