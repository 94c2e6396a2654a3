# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from .logger import configure_logging
from .paths import get_data_dir, get_logs_dir

__all__ = ["configure_logging", "get_data_dir", "get_logs_dir"]
