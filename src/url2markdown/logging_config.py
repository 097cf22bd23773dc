"""Logging setup for the url2markdown CLI and library users."""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAME = "url2markdown"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Libraries that log chatter at DEBUG/INFO which drowns out our own messages
NOISY_LOGGERS = ("aiohttp", "charset_normalizer")


def level_for(verbose: bool = False, quiet: bool = False, default: str = "INFO") -> str:
    """Map -v/-q flags to a level name; -v wins over -q."""
    if verbose:
        return "DEBUG"
    if quiet:
        return "ERROR"
    return default


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    format_string: Optional[str] = None,
    force: bool = False,
) -> logging.Logger:
    """
    Configure the ``url2markdown`` logger.

    Records go to stderr, never stdout, since stdout carries the Markdown.
    Handlers are installed once; later calls only adjust the level unless
    ``force`` is set.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Also write records to this file
        format_string: Format for both handlers (LOG_FORMAT by default)
        force: Replace existing handlers

    Returns:
        The package logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(format_string or LOG_FORMAT)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)
    logger.propagate = False

    if force or not logger.handlers:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
        if log_file:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        for handler in handlers:
            handler.setFormatter(formatter)
            logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(numeric_level)

    third_party_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    return logger
