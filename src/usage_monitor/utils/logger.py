# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Logging set-up for the shared "usage_monitor" logger.

Library modules only ever call logging.getLogger("usage_monitor"); the
application decides where records go by calling configure_logging().
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

from ..core.constants import LOG_BACKUP_COUNT, LOG_FILE_NAME, LOG_MAX_BYTES
from .paths import get_logs_dir

LOGGER_NAME = "usage_monitor"

FILE_FORMAT = "%(asctime)s [%(levelname)-5s] [%(name)s] %(message)s"


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[Path] = None,
    console: bool = False,
    rich_console: Optional[Console] = None,
) -> logging.Logger:
    """
    Attach handlers to the shared logger.

    Args:
        level: Minimum level (name or number)
        log_dir: Directory for monitor.log (defaults to <data_dir>/logs)
        console: Also log to stderr through rich
        rich_console: Console to use for the rich handler

    Returns:
        The configured logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Re-configuring replaces earlier handlers instead of stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    log_path = (log_dir or get_logs_dir()) / LOG_FILE_NAME
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    logger.addHandler(file_handler)

    if console:
        rich_handler = RichHandler(
            console=rich_console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        rich_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(rich_handler)

    logger.propagate = False
    return logger
