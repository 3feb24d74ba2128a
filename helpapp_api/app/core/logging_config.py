"""
Logging configuration for the HelpApp API.

``setup_logging`` attaches a console handler and, when ``LOG_FILE`` is
set, a size-rotated file handler to the root logger, and sets the
configured level on the ``helpapp_api`` package logger only.  Third
party loggers keep their own levels, so ``LOG_LEVEL=DEBUG`` does not
flood the output with library internals.

Handlers are named; calling ``setup_logging`` again (another
``create_app`` in the same process) only updates the level.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

APP_LOGGER_NAME = "helpapp_api"
CONSOLE_HANDLER_NAME = "helpapp-console"
FILE_HANDLER_NAME = "helpapp-file"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3


def _has_handler(logger: logging.Logger, name: str) -> bool:
    return any(handler.get_name() == name for handler in logger.handlers)


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> logging.Logger:
    """Configure logging for the application and return its package logger.

    Parameters
    ----------
    level : str
        Level name for the ``helpapp_api`` loggers (e.g. ``"DEBUG"``).
        Case insensitive; unknown names fall back to ``INFO``.
    logfile : Optional[str]
        Path of a log file, rotated at 5 MiB with three backups.  If
        omitted, only the console handler is attached.
    """
    root = logging.getLogger()
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    if not _has_handler(root, CONSOLE_HANDLER_NAME):
        console_handler = logging.StreamHandler()
        console_handler.set_name(CONSOLE_HANDLER_NAME)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    if logfile and not _has_handler(root, FILE_HANDLER_NAME):
        file_handler = RotatingFileHandler(
            Path(logfile).resolve(),
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        file_handler.set_name(FILE_HANDLER_NAME)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return app_logger
