"""Logging configuration for the RemoveBG AI shell."""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logger(level: str = "INFO", log_dir: Optional[Union[str, Path]] = None):
    """Configure loguru sinks.

    Console output is always enabled. When ``log_dir`` is given, a rotating
    application log and a separate error log are written there as well.
    """

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stdout,
        format=CONSOLE_FORMAT,
        level=level.upper(),
        colorize=True,
    )

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / "removebg.log",
            format=FILE_FORMAT,
            level=level.upper(),
            rotation="10 MB",
            retention="7 days",
            compression="gz",
        )

        logger.add(
            log_dir / "errors.log",
            format=FILE_FORMAT,
            level="ERROR",
            rotation="10 MB",
            retention="30 days",
            compression="gz",
        )

    return logger


log = logger
