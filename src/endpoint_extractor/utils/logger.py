"""
Centralized logging configuration.

Every module asks for its logger through get_logger(__name__). Level and
format come from the environment (LOG_LEVEL, LOG_FORMAT, LOG_DATE_FORMAT)
and the CLI may raise verbosity at runtime with set_level().
"""

import logging
import os

LOG_LEVEL: int = logging.getLevelName(os.getenv("LOG_LEVEL", "WARNING").upper())
LOG_FORMAT: str = os.getenv("LOG_FORMAT", "[%(asctime)s] %(levelname)s:%(name)s:%(message)s")
LOG_DATE_FORMAT: str = os.getenv("LOG_DATE_FORMAT", "%Y-%m-%d %H:%M:%S")

ROOT_LOGGER_NAME = "endpoint_extractor"

if not isinstance(LOG_LEVEL, int):
    LOG_LEVEL = logging.WARNING


def _create_handler() -> logging.StreamHandler:
    """Create a stderr handler so log lines never mix with report output on stdout."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    return handler


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        root.addHandler(_create_handler())
        root.setLevel(LOG_LEVEL)
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the package namespace.

    Args:
        name: Usually the calling module's __name__.
    Returns:
        A logger whose records flow through the shared package handler.
    """
    _configure_root()
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def set_level(level: int | str) -> None:
    """Change the level of every package logger at once."""
    _configure_root().setLevel(level)
