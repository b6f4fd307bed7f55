"""
Loguru sinks for crowd ranking runs.

Every module logs through ``get_logger(component)``; the component name is
carried in ``extra`` so console and file lines show which part of the
session (ranker, selector, orchestrator, ...) emitted them.
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[component]} | {name}:{function}:{line} - {message}"

logger.configure(extra={"component": "crowd_rank"})


def setup_logging(level: str = "INFO", debug: bool = False, log_file: str | Path | None = "crowd_rank.log") -> None:
    """
    Replace loguru's default handler with the crowd ranking sinks.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: Force DEBUG on the console and add a second, verbose file sink
        log_file: Rotating INFO file sink, or None for console only
    """
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else level, format=CONSOLE_FORMAT)

    if log_file is None:
        return

    log_path = Path(log_file)
    logger.add(log_path, level="INFO", format=FILE_FORMAT, rotation="10 MB", retention="7 days", compression="zip")

    if debug:
        # every belief update and selector decision
        debug_path = log_path.with_name(f"{log_path.stem}_debug{log_path.suffix}")
        logger.add(debug_path, level="DEBUG", format=FILE_FORMAT, rotation="50 MB", retention="3 days", compression="zip")


def get_logger(component: str | None = None) -> "Logger":
    """Logger tagged with a component name (the package name when omitted)."""
    if component:
        return logger.bind(component=component)
    return logger
