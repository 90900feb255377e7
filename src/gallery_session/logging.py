"""Logging setup for the gallery session engine, built on loguru.

Call :func:`setup_logging` once from the entry point, then log from any
module with ``from loguru import logger``. Components that run inside a
session can use :func:`get_logger` to tag their records with a component
name, which shows up in the console format and in JSON output.

Example:
    from gallery_session.logging import setup_logging

    setup_logging(level="DEBUG")

"""

import sys
from typing import Any

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[component]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: str | None = None,
) -> Any:
    """Configure loguru handlers for the engine.

    Args:
        level: Minimum log level to capture.
        json_output: Serialize records as JSON lines instead of the console format.
        log_file: Optional path of a rotating log file, written in the console format.

    Returns:
        The configured loguru logger.

    """
    logger.remove()
    logger.configure(extra={"component": "-"})

    if json_output:
        logger.add(sys.stderr, format="{message}", serialize=True, level=level)
    else:
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        logger.add(
            log_file,
            format=CONSOLE_FORMAT,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="gz",
        )

    return logger


def get_logger(component: str | None = None) -> Any:
    """Return the logger, bound to ``component`` when given.

    Example:
        log = get_logger("uploads")
        log.info("Batch of {} files queued", 20)

    """
    if component:
        return logger.bind(component=component)
    return logger
