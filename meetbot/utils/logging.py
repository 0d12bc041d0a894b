"""Logging configuration."""

import logging
import os
import sys

from pydantic import BaseModel

PACKAGE_LOGGER = "meetbot"


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"


def setup_logging(config: LogConfig | None = None) -> None:
    """Set up logging configuration for the process."""
    if config is None:
        config = LogConfig(level=os.getenv("LOG_LEVEL", "INFO"))

    level = getattr(logging, config.level.upper())
    logging.basicConfig(
        level=level,
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )
    # Module loggers inherit from here
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)

    # Provider SDKs log every request at INFO
    for noisy in ("anthropic", "openai", "httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)
        level: Explicit level; without one the logger follows the package
            level set by setup_logging

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    if level:
        logger.setLevel(level.upper())
    return logger


def get_silent_logger(name: str = "meetbot.silent") -> logging.Logger:
    """Get a logger that discards every record."""
    logger = logging.getLogger(name)
    logger.addHandler(logging.NullHandler())
    logger.propagate = False
    logger.disabled = True
    return logger
