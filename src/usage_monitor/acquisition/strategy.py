# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Acquisition strategies behind one acquire() contract.

The scheduler only sees a UsageFetcher. Which strategies back it, and in
which order, is configuration (USAGE_STRATEGIES).
"""

import logging
from typing import List, Optional, Protocol, Sequence

from ..core.config import MonitorConfig
from ..core.errors import AcquisitionError
from ..core.types import UsageFields
from .oauth import OAuthUsageFetcher
from .terminal import TerminalUsageFetcher

lib_logger = logging.getLogger("usage_monitor")


class UsageFetcher(Protocol):
    """Single-attempt usage acquisition for one account."""

    async def acquire(
        self, config_dir: Optional[str], timeout: Optional[float] = None
    ) -> UsageFields: ...


class FallbackFetcher:
    """
    Try strategies in order until one succeeds.

    The last failure is re-raised when every strategy fails.
    """

    def __init__(self, fetchers: Sequence[UsageFetcher]):
        if not fetchers:
            raise ValueError("FallbackFetcher needs at least one strategy")
        self._fetchers: List[UsageFetcher] = list(fetchers)

    async def acquire(
        self, config_dir: Optional[str], timeout: Optional[float] = None
    ) -> UsageFields:
        last_error: Optional[AcquisitionError] = None
        for fetcher in self._fetchers:
            name = getattr(fetcher, "name", type(fetcher).__name__)
            try:
                return await fetcher.acquire(config_dir, timeout)
            except AcquisitionError as e:
                lib_logger.info(f"Strategy '{name}' failed: {e}")
                last_error = e
        assert last_error is not None
        raise last_error


def build_fetcher(config: MonitorConfig) -> UsageFetcher:
    """Build the configured fetcher (a single strategy or a fallback chain)."""
    fetchers: List[UsageFetcher] = []
    for name in config.strategies:
        if name == "terminal":
            fetchers.append(
                TerminalUsageFetcher(
                    claude_path=config.claude_path, timeout=config.acquire_timeout
                )
            )
        elif name == "oauth":
            fetchers.append(
                OAuthUsageFetcher(
                    endpoint=config.oauth_endpoint, timeout=config.acquire_timeout
                )
            )
    if not fetchers:
        fetchers.append(
            TerminalUsageFetcher(
                claude_path=config.claude_path, timeout=config.acquire_timeout
            )
        )
    if len(fetchers) == 1:
        return fetchers[0]
    return FallbackFetcher(fetchers)
