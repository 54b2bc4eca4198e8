"""Loguru sink configuration shared by the CLI and embedding applications."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}"


def configure_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Replace loguru's default sink.

    Args:
        level: Minimum level for the stderr sink
        log_file: Optional file that receives DEBUG and above
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=CONSOLE_FORMAT)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level="DEBUG",
            format=FILE_FORMAT,
        )
