"""Centralized logging configuration for Lambda and long-running modes."""

import logging
import os
import sys
from typing import Any, Optional

LOG_FORMAT = "[%(levelname)s] %(asctime)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _log_level() -> int:
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def setup_root_logger() -> None:
    """Setup root logger writing to stdout (Lambda captures this)."""
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    logging.basicConfig(
        level=_log_level(),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
    )


setup_root_logger()


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger that writes to stdout in the CloudWatch-friendly format.

    Args:
        name: Logger name. If None, returns root logger.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name) if name else logging.getLogger()

    if name and not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(_log_level())

        # Root already has a stdout handler
        logger.propagate = False

    return logger


def log_event(logger: logging.Logger, event: str, **fields: Any) -> None:
    """
    Emit a single structured progress line.

    The line reads ``EVENT_NAME: key=value, key=value`` so it can be searched
    in CloudWatch; the raw fields are also attached to the record as
    ``event`` and ``fields``.
    """
    summary = ", ".join(f"{key}={value}" for key, value in fields.items())
    logger.info(
        f"{event.upper()}: {summary}",
        extra={"event": event, "fields": fields},
    )
