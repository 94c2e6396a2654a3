# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

from .resume import ResumeWatcher
from .scheduler import UsageScheduler
from .store import SnapshotStore
from .tracking import BackoffTracker, ThresholdTracker

__all__ = [
    "BackoffTracker",
    "ResumeWatcher",
    "SnapshotStore",
    "ThresholdTracker",
    "UsageScheduler",
]
