# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Filesystem locations used by the monitor.

Everything lives under one data directory so settings, logs and the
optional .env file travel together:

    <data_dir>/settings.json
    <data_dir>/.env
    <data_dir>/logs/monitor.log
"""

import os
from pathlib import Path
from typing import Optional

DATA_DIR_ENV = "USAGE_MONITOR_DATA_DIR"
DEFAULT_DATA_DIR_NAME = ".claude-usage-monitor"


def get_data_dir(override: Optional[Path] = None) -> Path:
    """Get the data directory, creating it if needed."""
    if override is not None:
        base = Path(override)
    elif os.environ.get(DATA_DIR_ENV):
        base = Path(os.environ[DATA_DIR_ENV]).expanduser()
    else:
        base = Path.home() / DEFAULT_DATA_DIR_NAME
    base.mkdir(parents=True, exist_ok=True)
    return base


def get_logs_dir(override: Optional[Path] = None) -> Path:
    """Get the logs directory, creating it if needed."""
    logs_dir = get_data_dir(override) / "logs"
    logs_dir.mkdir(exist_ok=True)
    return logs_dir
