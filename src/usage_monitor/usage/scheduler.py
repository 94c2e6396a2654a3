# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Multi-account usage scheduler.

Runs acquisition rounds on a fixed cadence, one account at a time, and
keeps a retry chain with exponential backoff for every account whose
last attempt failed. All mutable state (round flag, backoff, fired
thresholds, retry tasks) belongs to one UsageScheduler instance.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Set

from ..core.constants import DEFAULT_REFRESH_INTERVAL
from ..core.errors import AcquisitionError, SpawnError
from ..core.types import (
    Account,
    AlertCallback,
    AppSettings,
    UsageFields,
    UsageSnapshot,
)
from ..acquisition.strategy import UsageFetcher
from .store import SnapshotStore
from .tracking import BackoffTracker, ThresholdTracker

lib_logger = logging.getLogger("usage_monitor")

SettingsProvider = Callable[[], AppSettings]
UpdateCallback = Callable[[List[UsageSnapshot]], None]


class UsageScheduler:
    """
    Periodic usage acquisition across accounts.

    Example:
        scheduler = UsageScheduler(settings_store.load, build_fetcher(config))
        scheduler.start()
        ...
        await scheduler.shutdown()

    Settings are read at the start of every round and every retry
    attempt, so edits take effect on the next cycle (or immediately via
    restart()).
    """

    def __init__(
        self,
        settings_provider: SettingsProvider,
        fetcher: UsageFetcher,
        store: Optional[SnapshotStore] = None,
        on_update: Optional[UpdateCallback] = None,
        on_alert: Optional[AlertCallback] = None,
        on_pty_exhausted: Optional[Callable[[], None]] = None,
        backoff: Optional[BackoffTracker] = None,
        thresholds: Optional[ThresholdTracker] = None,
        acquire_timeout: Optional[float] = None,
    ):
        self._settings_provider = settings_provider
        self._fetcher = fetcher
        self.store = store or SnapshotStore()
        self.on_update = on_update
        self.on_alert = on_alert
        self.on_pty_exhausted = on_pty_exhausted
        self.backoff = backoff or BackoffTracker()
        self.thresholds = thresholds or ThresholdTracker()
        self._acquire_timeout = acquire_timeout

        # Round guard. The token lets a stale round (e.g. one interrupted
        # by sleep) finish without clearing a newer round's flag.
        self._round_running = False
        self._round_token: Optional[object] = None
        self._round_owner: Optional["asyncio.Task"] = None

        self._cadence_task: Optional[asyncio.Task] = None
        self._retry_tasks: Dict[str, asyncio.Task] = {}
        self._running = False
        self._pty_exhausted = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_round_running(self) -> bool:
        return self._round_running

    @property
    def pending_retries(self) -> Set[str]:
        return {aid for aid, task in self._retry_tasks.items() if not task.done()}

    def start(self) -> bool:
        """
        Start the cadence with an immediate round.

        Returns:
            False when there are no accounts to monitor
        """
        self.stop()
        settings = self._settings_provider()
        if not settings.accounts:
            lib_logger.info("No accounts configured, scheduler idle")
            return False

        self._running = True
        self._pty_exhausted = False
        self._cadence_task = asyncio.ensure_future(self._cadence_loop())
        lib_logger.info(
            f"Scheduler started: {len(settings.active_accounts)} active account(s), "
            f"interval {settings.refresh_interval}s"
        )
        return True

    def stop(self) -> None:
        """Cancel the cadence and every retry chain."""
        self._running = False
        if self._cadence_task is not None:
            if self._round_owner is self._cadence_task:
                # The round dies with its task
                self._release_round()
            self._cadence_task.cancel()
            self._cadence_task = None
        self._cancel_all_retries()

    def restart(self) -> bool:
        """Apply new settings: cancel pending timers, run now, resume cadence."""
        self.stop()
        return self.start()

    async def shutdown(self) -> None:
        """Stop and wait for cancelled tasks to unwind."""
        tasks = list(self._retry_tasks.values())
        if self._cadence_task is not None:
            tasks.append(self._cadence_task)
        self.stop()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # =========================================================================
    # PUBLIC OPERATIONS
    # =========================================================================

    async def run_round(self) -> List[UsageSnapshot]:
        """
        Acquire usage for every active account, sequentially.

        If a round is already in flight this returns the cached snapshots
        without starting another one.
        """
        if self._round_running:
            lib_logger.debug("Round already in progress, returning cached usage")
            return self.store.get_all()

        token = object()
        self._round_running = True
        self._round_token = token
        self._round_owner = asyncio.current_task()
        try:
            settings = self._settings_provider()
            self._prune(settings)
            for account in settings.active_accounts:
                if self._pty_exhausted:
                    break
                await self._acquire_account(account)
            self._publish()
            return self.store.get_all()
        finally:
            if self._round_token is token:
                self._release_round()

    async def refresh_now(self) -> List[UsageSnapshot]:
        """Manual refresh: drop pending retries, then run one round."""
        self._cancel_all_retries()
        return await self.run_round()

    def handle_system_resume(self) -> None:
        """
        React to wake-up / unlock.

        A round interrupted by sleep may have left the flag set; clear it,
        drop all retry chains and backoff, and restart from a fresh round.
        """
        lib_logger.info("System resume detected, restarting usage scheduler")
        self._release_round()
        self._cancel_all_retries()
        self.restart()

    def get_last_usage(self) -> List[UsageSnapshot]:
        return self.store.get_all()

    def reset_notification_record(self, account_id: str, dimension=None) -> None:
        """Re-arm alerts for an account (all dimensions or just one)."""
        self.thresholds.clear(account_id, dimension)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    async def _cadence_loop(self) -> None:
        while self._running:
            try:
                await self.run_round()
            except asyncio.CancelledError:
                raise
            except Exception:
                lib_logger.exception("Usage round failed unexpectedly")

            if not self._running:
                return
            try:
                interval = self._settings_provider().refresh_interval
            except Exception:
                lib_logger.exception("Failed to read settings, using default interval")
                interval = DEFAULT_REFRESH_INTERVAL
            if not interval or interval <= 0:
                interval = DEFAULT_REFRESH_INTERVAL
            await asyncio.sleep(interval)

    def _release_round(self) -> None:
        self._round_running = False
        self._round_token = None
        self._round_owner = None

    def _prune(self, settings: AppSettings) -> None:
        known = [a.id for a in settings.accounts]
        for account_id in self.store.retain(known):
            lib_logger.debug(f"Dropping state of removed account {account_id}")
            self._cancel_retry(account_id)
            self.backoff.reset(account_id)
            self.thresholds.clear(account_id)

    async def _fetch(self, account: Account) -> UsageFields:
        return await self._fetcher.acquire(account.config_dir, self._acquire_timeout)

    async def _acquire_account(self, account: Account) -> UsageSnapshot:
        try:
            fields = await self._fetch(account)
        except AcquisitionError as e:
            snapshot = self._record_failure(account, e)
            if isinstance(e, SpawnError) and e.pty_exhausted:
                self._handle_pty_exhausted(e)
            else:
                self._schedule_retry(account)
            return snapshot
        except Exception as e:
            lib_logger.exception(f"Unexpected error acquiring usage for '{account.name}'")
            snapshot = self._record_failure(account, e)
            self._schedule_retry(account)
            return snapshot

        snapshot = self._record_success(account, fields)
        self._cancel_retry(account.id)
        return snapshot

    def _record_success(self, account: Account, fields: UsageFields) -> UsageSnapshot:
        snapshot = UsageSnapshot.from_fields(account.id, fields)
        self.store.set(snapshot)
        self.backoff.reset(account.id)
        lib_logger.info(
            f"Usage for '{account.name}': session {fields.session_pct}% "
            f"(resets {fields.session_reset or '?'}), weekly {fields.weekly_pct}% "
            f"(resets {fields.weekly_reset or '?'})"
        )
        self._check_thresholds(account, snapshot)
        return snapshot

    def _record_failure(self, account: Account, error: Exception) -> UsageSnapshot:
        message = str(error) or type(error).__name__
        previous = self.store.get_one(account.id)
        if previous is not None:
            snapshot = previous.as_retrying(message)
        else:
            snapshot = UsageSnapshot(account_id=account.id, error=message, retrying=True)
        self.store.set(snapshot)
        lib_logger.warning(
            f"Usage acquisition failed for '{account.name}': "
            f"{type(error).__name__}: {message}"
        )
        return snapshot

    def _check_thresholds(self, account: Account, snapshot: UsageSnapshot) -> None:
        if self.on_alert is None:
            return
        for dimension, value in (
            ("session", snapshot.session_pct),
            ("weekly", snapshot.weekly_pct),
        ):
            for threshold in self.thresholds.check(account.id, dimension, value):
                lib_logger.info(
                    f"Alert: '{account.name}' {dimension} usage reached {threshold}%"
                )
                try:
                    self.on_alert(account.name, threshold, dimension)
                except Exception:
                    lib_logger.exception("Alert callback failed")

    def _publish(self) -> None:
        if self.on_update is None:
            return
        try:
            self.on_update(self.store.get_all())
        except Exception:
            lib_logger.exception("Usage update callback failed")

    def _handle_pty_exhausted(self, error: SpawnError) -> None:
        if self._pty_exhausted:
            return
        self._pty_exhausted = True
        lib_logger.error(f"PTY devices exhausted, stopping scheduler: {error}")
        self._running = False
        self._cancel_all_retries()
        if self.on_pty_exhausted is not None:
            try:
                self.on_pty_exhausted()
            except Exception:
                lib_logger.exception("PTY exhaustion callback failed")

    # -------------------------------------------------------------------------
    # Retry chains
    # -------------------------------------------------------------------------

    def _schedule_retry(self, account: Account) -> None:
        self._cancel_retry(account.id)
        delay = self.backoff.next_delay(account.id)
        lib_logger.info(f"Retrying '{account.name}' in {delay:.0f}s")
        self._retry_tasks[account.id] = asyncio.ensure_future(
            self._retry_chain(account.id, delay)
        )

    async def _retry_chain(self, account_id: str, delay: float) -> None:
        try:
            while True:
                await asyncio.sleep(delay)

                account = self._settings_provider().get_account(account_id)
                if account is None or not account.is_active:
                    self.backoff.reset(account_id)
                    return

                error: Optional[Exception] = None
                try:
                    fields = await self._fetch(account)
                except AcquisitionError as e:
                    error = e
                except Exception as e:
                    lib_logger.exception(
                        f"Unexpected error retrying usage for '{account.name}'"
                    )
                    error = e

                if error is None:
                    self._record_success(account, fields)
                    self._publish()
                    return

                self._record_failure(account, error)
                self._publish()
                if isinstance(error, SpawnError) and error.pty_exhausted:
                    self._handle_pty_exhausted(error)
                    return

                delay = self.backoff.next_delay(account_id)
                lib_logger.info(f"Retrying '{account.name}' in {delay:.0f}s")
        except asyncio.CancelledError:
            raise
        except Exception:
            lib_logger.exception(f"Retry chain for {account_id} crashed")
        finally:
            if self._retry_tasks.get(account_id) is asyncio.current_task():
                del self._retry_tasks[account_id]

    def _cancel_retry(self, account_id: str) -> None:
        task = self._retry_tasks.pop(account_id, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    def _cancel_all_retries(self) -> None:
        current = asyncio.current_task() if self._has_loop() else None
        for task in self._retry_tasks.values():
            if task is not current:
                task.cancel()
        self._retry_tasks.clear()
        self.backoff.clear()

    @staticmethod
    def _has_loop() -> bool:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True
