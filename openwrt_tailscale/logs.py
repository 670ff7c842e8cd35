"""Logging setup for openwrt_tailscale.

Messages go to the console through rich and are appended, timestamped,
to the log file so an operator can review a run afterwards.
"""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from openwrt_tailscale.config import Settings

LOGGER_NAME = "openwrt_tailscale"
FILE_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(
    settings: Settings,
    verbose: bool = False,
    console: Console | None = None,
) -> logging.Logger:
    """Attach console and file handlers to the package logger.

    Calling this again replaces the handlers, so repeated runs in one
    process (tests) do not duplicate output.

    Args:
        settings: Settings providing the log file and level.
        verbose: Force DEBUG level.
        console: Rich console to log to (defaults to stderr).

    Returns:
        The configured package logger.
    """
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    file_handler = _open_file_handler(settings.log_file)
    if file_handler is not None:
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)
    else:
        logger.warning(
            "Could not open log file %s, logging to console only", settings.log_file
        )

    return logger


def _open_file_handler(log_file: Path) -> logging.FileHandler | None:
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_file, mode="a", encoding="utf-8")
    except OSError:
        return None


__all__ = ["DATE_FORMAT", "FILE_FORMAT", "LOGGER_NAME", "configure_logging"]
