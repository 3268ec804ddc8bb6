# logplatform/core/logging.py
"""
Logging setup for the API process and its background jobs.

Ingest requests, scheduled archive runs and retention sweeps all log through
the root logger, so one stdout handler with a `time | level | logger` format
is enough to follow a migration from fetch to delete. APScheduler logs every
job execution and aiosqlite every connection at INFO; both are held at
WARNING even when the app runs at DEBUG.
"""

from __future__ import annotations

import logging
import sys

# Libraries that are chatty at INFO and add nothing to operational logs.
_NOISY_LOGGERS = ("apscheduler.executors.default", "aiosqlite")


def configure_logging(level: str = "INFO") -> None:
    """
    Install the stdout handler at `level` ("DEBUG", "INFO", ...).

    Called from the app lifespan; calling it again replaces the handler.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
