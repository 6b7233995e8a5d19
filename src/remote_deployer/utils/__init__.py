"""Shared helpers."""

from .logging import get_logger, run_log

__all__ = ["get_logger", "run_log"]
