"""Logging configuration for the proxy."""

import logging
import sys

LOGGER_NAME = "bedrock-proxy"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Set up logging with proper handlers and formatters."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

    # Propagate to root so pytest's caplog and uvicorn's handlers see records
    logger.propagate = True

    return logger


def resolve_log_level(name: str | None) -> int:
    """Translate a level name from config (e.g. "debug") into a logging level."""
    if not name:
        return logging.INFO
    level = logging.getLevelName(str(name).upper())
    if isinstance(level, int):
        return level
    return logging.INFO


# Global logger instance
logger = setup_logging()
