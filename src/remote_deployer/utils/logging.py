"""Logging helpers."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

_LOGGING_CONFIGURED = False

PACKAGE_LOGGER = "remote_deployer"
RUN_LOG_FORMAT = "[%(asctime)s] %(message)s"
RUN_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    global _LOGGING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        logging.basicConfig(
            level=logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
        )
        _LOGGING_CONFIGURED = True
    return logging.getLogger(name)


def run_log_name(now: Optional[datetime] = None) -> str:
    """Return the file name for a run started at ``now``."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"deploy_{stamp}.log"


@contextmanager
def run_log(log_dir: Path, now: Optional[datetime] = None) -> Iterator[Path]:
    """Persist every package log record to a timestamped file for one run.

    The handler is attached to the package logger on entry and detached and
    closed on exit, so the file only ever holds a single run.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    path = log_dir / run_log_name(now)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(RUN_LOG_FORMAT, datefmt=RUN_LOG_DATEFMT))

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)
    try:
        yield path
    finally:
        logger.removeHandler(handler)
        handler.close()
