"""
Logger setup for the command line runners.

Library modules only call logging.getLogger(__name__); handlers are
attached here, once, by whichever script is the entry point.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "src"


def setup_logger(
    verbosity: int = 1,
    log_file: Optional[str | Path] = None,
    logger_name: str = ROOT_LOGGER_NAME,
) -> logging.Logger:
    """
    Attach a rich console handler (and optionally a file handler).

    Args:
        verbosity: 0 = warnings only, 1 = info, 2+ = debug
        log_file: Optional path for a detailed log file
        logger_name: Logger to configure; defaults to the package root
    """
    level = logging.WARNING if verbosity <= 0 else logging.INFO if verbosity == 1 else logging.DEBUG

    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG if log_file else level)
    logger.handlers.clear()
    logger.propagate = False

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=(verbosity >= 2),
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
        ))
        logger.addHandler(file_handler)

    return logger
