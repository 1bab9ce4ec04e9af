"""Logging configuration for the proxy server.

This module provides centralized logging configuration using Loguru.
It sets up logging to the console and, on request, to a rotating file.
Every record carries a ``context`` extra, which diagnostic events fill with
the client the event belongs to.
"""

import sys
from pathlib import Path

from loguru import logger

LOG_DIR = Path.home() / ".forward-socks-proxy" / "logs"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[context]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[context]} | {name}:{function}:{line} - {message}"


def configure_logging(*, debug: bool = False, log_file: bool = False) -> Path | None:
    """Replace Loguru's default handler with the proxy's handlers.

    Args:
        debug: Log DEBUG records to the console instead of INFO and above
        log_file: Also write DEBUG records to ``LOG_DIR / "proxy.log"``

    Returns:
        Path | None: The log file path when file logging is enabled
    """
    logger.remove()
    logger.configure(extra={"context": "-"})

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level="DEBUG" if debug else "INFO",
        backtrace=True,
        diagnose=debug,
    )

    if not log_file:
        return None

    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_path = LOG_DIR / "proxy.log"
    logger.add(
        log_path,
        rotation="10 MB",
        retention="1 week",
        compression="zip",
        format=FILE_FORMAT,
        level="DEBUG",
        backtrace=True,
        diagnose=False,
        enqueue=True,
    )
    return log_path


__all__ = ["configure_logging", "LOG_DIR"]
