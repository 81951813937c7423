"""Logging module for the proxy."""

from .setup import LOGGER_NAME, logger, resolve_log_level, setup_logging

__all__ = [
    "LOGGER_NAME",
    "logger",
    "resolve_log_level",
    "setup_logging",
]
