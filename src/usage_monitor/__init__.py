# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""Claude CLI usage monitor library."""

from .acquisition import (
    FallbackFetcher,
    OAuthUsageFetcher,
    TerminalUsageFetcher,
    build_fetcher,
    parse_usage_output,
)
from .core.config import MonitorConfig, load_config
from .core.errors import (
    AcquisitionError,
    AcquisitionTimeoutError,
    CredentialsNotFoundError,
    ProcessExitError,
    ProtocolDriftError,
    SpawnError,
    UsageEndpointError,
)
from .core.types import Account, AppSettings, UsageFields, UsageSnapshot
from .settings import SettingsStore
from .usage import ResumeWatcher, SnapshotStore, UsageScheduler

__version__ = "0.1.0"

__all__ = [
    "Account",
    "AcquisitionError",
    "AcquisitionTimeoutError",
    "AppSettings",
    "CredentialsNotFoundError",
    "FallbackFetcher",
    "MonitorConfig",
    "OAuthUsageFetcher",
    "ProcessExitError",
    "ProtocolDriftError",
    "ResumeWatcher",
    "SettingsStore",
    "SnapshotStore",
    "SpawnError",
    "TerminalUsageFetcher",
    "UsageEndpointError",
    "UsageFields",
    "UsageScheduler",
    "UsageSnapshot",
    "build_fetcher",
    "load_config",
    "parse_usage_output",
]
