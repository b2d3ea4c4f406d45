# planning_poker/core/logging.py

import logging
import os
import sys


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

APP_LOGGER = "planning_poker"

# Per-frame transport chatter; only interesting when debugging a socket
QUIET_LOGGERS = ("websockets", "websockets.server", "httpx")


def setup_logging(level_name: str | None = None) -> None:
    """
    Configure logging for the poker server.

    ``level_name`` (falling back to LOG_LEVEL, then INFO) applies to the root
    logger and to the ``planning_poker`` package. At DEBUG the package also
    logs every room broadcast, which is noisy with many rooms.

    A stdout handler is installed only when nothing else (uvicorn, pytest)
    has configured the root logger yet; levels are applied either way.
    """
    log_level_name = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, log_level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root_logger.addHandler(handler)

    logging.getLogger(APP_LOGGER).setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    # Connection open/close lines come from uvicorn.error at INFO
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.INFO)


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger for a module, e.g. ``get_logger(__name__)``; None gives the package logger."""
    return logging.getLogger(name or APP_LOGGER)
