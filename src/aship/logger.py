"""
Centralized logging for aship.

Rules:
1. CONSOLE: warnings and errors go to stderr. ``-v`` lowers the console
   level to INFO, ``-vv`` to DEBUG.
2. FILE: when a log file is given, everything from DEBUG up is written to
   it, rotated at 1 MB with three files kept.

Modules log through ``from loguru import logger``; this module only
configures sinks.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


CONSOLE_FORMAT = "<level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def console_level(verbosity: int) -> str:
    """Map a ``-v`` count to a loguru level name."""
    if verbosity >= 2:
        return "DEBUG"
    if verbosity == 1:
        return "INFO"
    return "WARNING"


def setup_logger(
    verbosity: int = 0,
    log_file: Optional[str] = None,
    file_level: str = "DEBUG",
) -> None:
    """
    Configure loguru sinks for one CLI invocation.

    Args:
        verbosity: Number of ``-v`` flags given on the command line
        log_file: Optional path of the rotating log file
        file_level: Minimum level written to the log file
    """
    logger.remove()

    logger.add(
        sys.stderr,
        level=console_level(verbosity),
        format=CONSOLE_FORMAT,
        colorize=None,
    )

    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create log directory for {log_file}: {e}")
            return
        logger.add(
            log_file,
            level=file_level,
            format=FILE_FORMAT,
            rotation="1 MB",
            retention=3,
            backtrace=False,
            diagnose=False,
        )
