# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Command-line entry point.

    usage-monitor run        live dashboard (r+Enter refresh, q+Enter quit)
    usage-monitor once       one round, print table (or --json)
    usage-monitor accounts   add / remove / rename / toggle accounts
    usage-monitor check      verify the claude CLI can be found
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Set

from rich.console import Console
from rich.live import Live

from usage_monitor.acquisition.strategy import build_fetcher
from usage_monitor.acquisition.terminal import find_claude_executable
from usage_monitor.core.config import MonitorConfig, load_config
from usage_monitor.core.types import UsageSnapshot
from usage_monitor.settings import SettingsStore
from usage_monitor.usage.resume import ResumeWatcher
from usage_monitor.usage.scheduler import UsageScheduler
from usage_monitor.utils.logger import configure_logging
from usage_monitor.utils.paths import get_logs_dir

from .accounts import login_command, manage_accounts
from .dashboard import render_dashboard

lib_logger = logging.getLogger("usage_monitor")

console = Console()

DASHBOARD_FOOTER = "r + Enter: refresh now  |  q + Enter: quit"


# =============================================================================
# RUN (LIVE DASHBOARD)
# =============================================================================


class DashboardApp:
    """Live dashboard wired to a scheduler, a resume watcher and stdin."""

    def __init__(self, config: MonitorConfig, settings_store: SettingsStore):
        self.config = config
        self.settings_store = settings_store
        self.scheduler = UsageScheduler(
            settings_store.load,
            build_fetcher(config),
            on_update=self._on_update,
            on_alert=self._on_alert,
            on_pty_exhausted=self._on_pty_exhausted,
            acquire_timeout=config.acquire_timeout,
        )
        self.watcher = ResumeWatcher(
            self.scheduler.handle_system_resume,
            check_interval=config.resume_check_interval,
            threshold=config.resume_threshold,
        )
        self._live: Optional[Live] = None
        self._stop: Optional[asyncio.Event] = None
        self._tasks: Set[asyncio.Task] = set()
        self.exit_code = 0
        self._settings_mtime = self._read_settings_mtime()

    def _read_settings_mtime(self) -> Optional[int]:
        try:
            return self.settings_store.path.stat().st_mtime_ns
        except OSError:
            return None

    def reload_if_settings_changed(self) -> bool:
        """Restart the scheduler when settings.json changed on disk."""
        mtime = self._read_settings_mtime()
        if mtime == self._settings_mtime:
            return False
        self._settings_mtime = mtime
        lib_logger.info("Settings changed, restarting scheduler")
        self.scheduler.restart()
        return True

    def _render(self):
        return render_dashboard(
            self.settings_store.load().accounts,
            self.scheduler.get_last_usage(),
            footer=DASHBOARD_FOOTER,
        )

    def _on_update(self, snapshots: List[UsageSnapshot]) -> None:
        if self._live is not None:
            self._live.update(self._render())

    def _on_alert(self, account_name: str, threshold: int, dimension: str) -> None:
        color = "red" if threshold >= 100 else "yellow"
        console.print(
            f"[bold {color}]:bell: {account_name}: {dimension} usage reached "
            f"{threshold}%[/bold {color}]"
        )

    def _on_pty_exhausted(self) -> None:
        console.print(
            "[bold red]The system ran out of pseudo-terminal devices. "
            "Monitoring stopped; restart the monitor once other terminals "
            "are closed.[/bold red]"
        )
        self.exit_code = 2
        if self._stop is not None:
            self._stop.set()

    def _on_stdin(self) -> None:
        line = sys.stdin.readline()
        if not line:
            # stdin closed, keep running without key commands
            asyncio.get_running_loop().remove_reader(sys.stdin.fileno())
            return
        command = line.strip().lower()
        if command == "q":
            self._stop.set()
        elif command == "r":
            lib_logger.info("Manual refresh requested")
            task = asyncio.ensure_future(self.scheduler.refresh_now())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def run(self) -> int:
        loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()

        if not self.scheduler.start():
            console.print(
                "[yellow]No accounts configured. Run "
                "[bold]usage-monitor accounts[/bold] first.[/yellow]"
            )
            return 1
        self.watcher.start()

        stdin_attached = False
        if sys.stdin.isatty():
            loop.add_reader(sys.stdin.fileno(), self._on_stdin)
            stdin_attached = True

        try:
            with Live(self._render(), console=console, refresh_per_second=1) as live:
                self._live = live
                while not self._stop.is_set():
                    try:
                        await asyncio.wait_for(self._stop.wait(), timeout=1.0)
                    except asyncio.TimeoutError:
                        self.reload_if_settings_changed()
                        # Keeps the "x min ago" column moving
                        live.update(self._render())
        finally:
            self._live = None
            if stdin_attached:
                loop.remove_reader(sys.stdin.fileno())
            await self.watcher.stop()
            for task in list(self._tasks):
                task.cancel()
            await self.scheduler.shutdown()
        return self.exit_code


# =============================================================================
# COMMANDS
# =============================================================================


def cmd_run(config: MonitorConfig, settings_store: SettingsStore) -> int:
    app = DashboardApp(config, settings_store)
    try:
        return asyncio.run(app.run())
    except KeyboardInterrupt:
        return 130


async def _run_once(config: MonitorConfig, settings_store: SettingsStore) -> List[UsageSnapshot]:
    scheduler = UsageScheduler(
        settings_store.load,
        build_fetcher(config),
        acquire_timeout=config.acquire_timeout,
    )
    try:
        return await scheduler.run_round()
    finally:
        # No retries for a one-shot run
        await scheduler.shutdown()


def cmd_once(config: MonitorConfig, settings_store: SettingsStore, as_json: bool) -> int:
    settings = settings_store.load()
    if not settings.active_accounts:
        console.print("[yellow]No active accounts configured.[/yellow]")
        return 1

    snapshots = asyncio.run(_run_once(config, settings_store))

    if as_json:
        names = {a.id: a.name for a in settings.accounts}
        payload = []
        for snapshot in snapshots:
            entry = snapshot.to_dict()
            entry["account_name"] = names.get(snapshot.account_id, snapshot.account_id)
            payload.append(entry)
        print(json.dumps(payload, indent=2))
    else:
        console.print(render_dashboard(settings.accounts, snapshots))

    return 1 if any(s.error for s in snapshots) else 0


def cmd_accounts(settings_store: SettingsStore) -> int:
    try:
        manage_accounts(settings_store)
    except (KeyboardInterrupt, EOFError):
        console.print()
    return 0


def cmd_check(config: MonitorConfig, settings_store: SettingsStore) -> int:
    executable = find_claude_executable(config.claude_path)
    if executable:
        console.print(f"[green]:white_check_mark: claude CLI found:[/green] {executable}")
    else:
        console.print(
            "[red]:no_entry: claude CLI not found.[/red] Install it or set "
            "[bold]CLAUDE_CLI_PATH[/bold]."
        )

    console.print(f"Data directory: {config.data_dir}")
    console.print(f"Strategies: {', '.join(config.strategies)}")
    for account in settings_store.load().accounts:
        credentials = Path(account.config_dir)
        marker = "[green]ok[/green]" if credentials.is_dir() else "[red]missing[/red]"
        console.print(f"  {account.name}: {account.config_dir} ({marker})")
        if not credentials.is_dir():
            console.print(f"    log in with: [yellow]{login_command(account)}[/yellow]")

    return 0 if executable else 1


# =============================================================================
# ENTRY POINT
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="usage-monitor", description="Claude CLI usage monitor"
    )
    parser.add_argument("--data-dir", type=Path, help="Override the data directory")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Also log to the console"
    )
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("run", help="Live dashboard (default)")
    once_parser = sub.add_parser("once", help="Run one round and print the result")
    once_parser.add_argument("--json", action="store_true", help="Print JSON")
    sub.add_parser("accounts", help="Manage monitored accounts")
    sub.add_parser("check", help="Check that the claude CLI can be found")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.data_dir)
    configure_logging(
        config.log_level,
        log_dir=get_logs_dir(config.data_dir),
        console=args.verbose,
        rich_console=console,
    )
    settings_store = SettingsStore(config.settings_path)

    command = args.command or "run"
    lib_logger.debug(f"Starting command '{command}' (data dir {config.data_dir})")

    if command == "run":
        return cmd_run(config, settings_store)
    elif command == "once":
        return cmd_once(config, settings_store, args.json)
    elif command == "accounts":
        return cmd_accounts(settings_store)
    elif command == "check":
        return cmd_check(config, settings_store)
    return 2


if __name__ == "__main__":
    sys.exit(main())
