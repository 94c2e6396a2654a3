# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Sleep/wake detection without OS power events.

A suspended machine stops the monotonic clock but not the wall clock, so
a tick whose wall-clock elapsed time exceeds the monotonic elapsed time
by more than the threshold means the system was asleep in between.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from ..core.constants import DEFAULT_RESUME_CHECK_INTERVAL, DEFAULT_RESUME_THRESHOLD

lib_logger = logging.getLogger("usage_monitor")


class ResumeWatcher:
    """Invoke a callback after the system resumes from sleep."""

    def __init__(
        self,
        callback: Callable[[], None],
        check_interval: float = DEFAULT_RESUME_CHECK_INTERVAL,
        threshold: float = DEFAULT_RESUME_THRESHOLD,
        wall_clock: Callable[[], float] = time.time,
        monotonic_clock: Callable[[], float] = time.monotonic,
    ):
        self._callback = callback
        self.check_interval = check_interval
        self.threshold = threshold
        self._wall_clock = wall_clock
        self._monotonic_clock = monotonic_clock
        self._last_wall = 0.0
        self._last_monotonic = 0.0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def mark(self) -> None:
        """Take the reference reading for the next check."""
        self._last_wall = self._wall_clock()
        self._last_monotonic = self._monotonic_clock()

    def check(self) -> bool:
        """
        Compare both clocks since the last reading and re-mark.

        Returns:
            True if a resume was detected (and the callback invoked)
        """
        wall = self._wall_clock()
        mono = self._monotonic_clock()
        drift = (wall - self._last_wall) - (mono - self._last_monotonic)
        self._last_wall = wall
        self._last_monotonic = mono

        if drift <= self.threshold:
            return False

        lib_logger.info(f"Detected system resume (clock jumped {drift:.0f}s)")
        try:
            self._callback()
        except Exception:
            lib_logger.exception("Resume callback failed")
        return True

    async def _run(self) -> None:
        self.mark()
        while True:
            await asyncio.sleep(self.check_interval)
            self.check()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.ensure_future(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
