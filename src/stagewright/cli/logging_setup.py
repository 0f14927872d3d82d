"""Logging configuration for the stagewright CLI."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.logging import RichHandler

from stagewright.cli.console import error_console

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
QUIET_LOGGERS = ("httpx", "openai", "httpcore", "urllib3")


def setup_logging(
    logger_name: str = "stagewright",
    log_file: str | None = None,
    verbose: bool = False,
) -> logging.Logger:
    """
    Route package logs to stderr through rich and, optionally, to a file.

    Stage progress is logged at INFO, so the console shows a run's
    stage-by-stage trail by default; verbose adds context sizes and
    checkpoint writes. The file always receives DEBUG.

    Args:
        logger_name: Logger to configure (the package root by default)
        log_file: Path to log file (None for no file logging)
        verbose: Enable DEBUG level on console (default INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG)
    # One CLI invocation per process normally; tests invoke many
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=error_console,
        level=logging.DEBUG if verbose else logging.INFO,
        show_path=False,
        show_time=False,
    )
    logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="w")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        logger.addHandler(file_handler)

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
