# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Runtime configuration loaded from the environment.

Values come from os.environ after loading <data_dir>/.env and ./.env
with python-dotenv (existing environment variables win).

Environment variables:
    USAGE_MONITOR_DATA_DIR: Data directory (default: ~/.claude-usage-monitor)
    CLAUDE_CLI_PATH: Explicit path to the claude executable
    USAGE_ACQUIRE_TIMEOUT: Per-attempt timeout in seconds (default: 60)
    USAGE_STRATEGIES: Comma list of acquisition strategies (default: terminal)
    USAGE_OAUTH_ENDPOINT: Usage endpoint for the oauth strategy
    USAGE_RESUME_CHECK_INTERVAL: Sleep detection tick in seconds (default: 15)
    USAGE_RESUME_THRESHOLD: Clock jump treated as a resume (default: 30)
    USAGE_MONITOR_LOG_LEVEL: Log level (default: INFO)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from ..utils.paths import get_data_dir
from .constants import (
    DEFAULT_ACQUIRE_TIMEOUT,
    DEFAULT_RESUME_CHECK_INTERVAL,
    DEFAULT_RESUME_THRESHOLD,
    OAUTH_USAGE_ENDPOINT,
)

lib_logger = logging.getLogger("usage_monitor")

KNOWN_STRATEGIES = ("terminal", "oauth")


def _env_float(name: str, default: float) -> float:
    """Parse a positive float from an environment variable with fallback."""
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        lib_logger.warning(f"Invalid {name} value {raw!r}, using default {default}")
        return default
    if value <= 0:
        lib_logger.warning(f"{name} must be positive, using default {default}")
        return default
    return value


def _env_strategies(name: str, default: str) -> List[str]:
    raw = os.environ.get(name) or default
    strategies = []
    for part in raw.split(","):
        part = part.strip().lower()
        if not part:
            continue
        if part not in KNOWN_STRATEGIES:
            lib_logger.warning(f"Ignoring unknown acquisition strategy {part!r}")
            continue
        if part not in strategies:
            strategies.append(part)
    return strategies or [default]


@dataclass
class MonitorConfig:
    """Resolved runtime configuration."""

    data_dir: Path
    claude_path: Optional[str] = None
    acquire_timeout: float = DEFAULT_ACQUIRE_TIMEOUT
    strategies: List[str] = field(default_factory=lambda: ["terminal"])
    oauth_endpoint: str = OAUTH_USAGE_ENDPOINT
    resume_check_interval: float = DEFAULT_RESUME_CHECK_INTERVAL
    resume_threshold: float = DEFAULT_RESUME_THRESHOLD
    log_level: str = "INFO"

    @property
    def settings_path(self) -> Path:
        return self.data_dir / "settings.json"


def load_config(data_dir: Optional[Path] = None) -> MonitorConfig:
    """
    Load configuration from .env files and the environment.

    Args:
        data_dir: Explicit data directory (overrides USAGE_MONITOR_DATA_DIR)

    Returns:
        MonitorConfig
    """
    resolved_dir = get_data_dir(data_dir)

    # override=False: real environment variables take precedence
    load_dotenv(resolved_dir / ".env", override=False)
    load_dotenv(Path.cwd() / ".env", override=False)

    return MonitorConfig(
        data_dir=resolved_dir,
        claude_path=os.environ.get("CLAUDE_CLI_PATH") or None,
        acquire_timeout=_env_float("USAGE_ACQUIRE_TIMEOUT", DEFAULT_ACQUIRE_TIMEOUT),
        strategies=_env_strategies("USAGE_STRATEGIES", "terminal"),
        oauth_endpoint=os.environ.get("USAGE_OAUTH_ENDPOINT") or OAUTH_USAGE_ENDPOINT,
        resume_check_interval=_env_float(
            "USAGE_RESUME_CHECK_INTERVAL", DEFAULT_RESUME_CHECK_INTERVAL
        ),
        resume_threshold=_env_float("USAGE_RESUME_THRESHOLD", DEFAULT_RESUME_THRESHOLD),
        log_level=(os.environ.get("USAGE_MONITOR_LOG_LEVEL") or "INFO").upper(),
    )
