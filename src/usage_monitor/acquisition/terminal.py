# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Terminal acquisition strategy.

Spawns the claude CLI in a pseudo-terminal with pexpect, wires its
output into a UsageSession through the event loop's reader callbacks,
and returns the parsed usage once the session settles.

The CLI is started with the account's config directory as
CLAUDE_CONFIG_DIR, so each account is a separate login.
"""

import asyncio
import errno
import logging
import os
import shutil
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

import pexpect

from ..core.constants import (
    DEFAULT_ACQUIRE_TIMEOUT,
    NESTED_SESSION_ENV_VARS,
    READ_CHUNK_SIZE,
    TERMINAL_COLUMNS,
    TERMINAL_ROWS,
)
from ..core.errors import AcquisitionError, SpawnError
from ..core.types import UsageFields
from .prompts import SETUP_PROMPT_RULES, PromptRule
from .session import EngineTimings, UsageSession

lib_logger = logging.getLogger("usage_monitor")

CLI_ARGS = ["--dangerously-skip-permissions"]

PTY_EXHAUSTED_ERRNOS = {errno.ENOSPC, errno.EAGAIN, errno.ENXIO}


def _candidate_paths() -> List[Path]:
    home = Path.home()
    return [
        home / ".local" / "bin" / "claude",
        home / ".claude" / "local" / "claude",
        Path("/usr/local/bin/claude"),
        Path("/opt/homebrew/bin/claude"),
        Path("/usr/bin/claude"),
    ]


def find_claude_executable(explicit: Optional[str] = None) -> Optional[str]:
    """
    Locate the claude executable.

    Order: explicit path, well-known install locations, then PATH.

    Returns:
        Absolute path or None if nothing executable was found
    """
    if explicit:
        path = Path(explicit).expanduser()
        if path.is_file() and os.access(path, os.X_OK):
            return str(path)
        return shutil.which(explicit)

    for path in _candidate_paths():
        if path.is_file() and os.access(path, os.X_OK):
            return str(path)
    return shutil.which("claude")


def check_cli_installed(explicit: Optional[str] = None) -> bool:
    """Check whether the claude CLI can be found."""
    return find_claude_executable(explicit) is not None


def build_child_env(
    config_dir: Optional[str], base_env: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """
    Environment for the CLI child process.

    The nested-session markers are dropped: when the monitor itself runs
    from inside a CLI session the child would otherwise refuse to start.
    """
    env = dict(os.environ if base_env is None else base_env)
    for name in NESTED_SESSION_ENV_VARS:
        env.pop(name, None)
    env["TERM"] = "xterm-256color"
    if config_dir:
        env["CLAUDE_CONFIG_DIR"] = config_dir
    return env


def _is_pty_exhausted(error: OSError) -> bool:
    if error.errno in PTY_EXHAUSTED_ERRNOS:
        return True
    return "out of pty devices" in str(error).lower()


class PexpectTransport:
    """
    Connects a pexpect child to a UsageSession.

    Reading happens in an event-loop reader callback; blocking pexpect
    calls (terminate, close) run in the default executor.
    """

    def __init__(self, child: pexpect.spawn, loop: asyncio.AbstractEventLoop):
        self._child = child
        self._loop = loop
        self._session: Optional[UsageSession] = None
        self._reading = False
        self._terminating = False
        self._reaped = False
        self._tasks: List[asyncio.Future] = []

    def attach(self, session: UsageSession) -> None:
        self._session = session
        self._loop.add_reader(self._child.child_fd, self._on_readable)
        self._reading = True

    # SessionTransport -------------------------------------------------------

    def write(self, data: str) -> None:
        self._child.send(data)

    def interrupt(self) -> None:
        self._child.sendintr()

    def terminate(self) -> None:
        if self._terminating:
            return
        self._terminating = True
        self._tasks.append(self._loop.run_in_executor(None, self._kill_child))

    # ------------------------------------------------------------------------

    def _on_readable(self) -> None:
        try:
            data = self._child.read_nonblocking(READ_CHUNK_SIZE, timeout=0)
        except pexpect.TIMEOUT:
            return
        except pexpect.EOF:
            self._on_eof()
            return
        except OSError as e:
            lib_logger.warning(f"Reading from the CLI terminal failed: {e}")
            if self._session is not None:
                self._session.abort(AcquisitionError(f"Terminal read failed: {e}"))
            self._on_eof()
            return
        if data and self._session is not None:
            self._session.feed(data)

    def _on_eof(self) -> None:
        self._stop_reading()
        if self._reaped:
            return
        self._reaped = True
        self._tasks.append(self._loop.create_task(self._reap()))

    async def _reap(self) -> None:
        await self._loop.run_in_executor(None, self._close_child)
        if self._session is not None:
            self._session.process_exited(
                self._child.exitstatus, self._child.signalstatus
            )

    def _kill_child(self) -> None:
        try:
            if self._child.isalive():
                self._child.terminate(force=True)
        except (pexpect.ExceptionPexpect, OSError) as e:
            lib_logger.debug(f"Failed to terminate CLI process: {e}")

    def _close_child(self) -> None:
        try:
            self._child.close(force=True)
        except (pexpect.ExceptionPexpect, OSError) as e:
            lib_logger.debug(f"Failed to close CLI process: {e}")

    def _stop_reading(self) -> None:
        if self._reading:
            self._reading = False
            try:
                self._loop.remove_reader(self._child.child_fd)
            except (ValueError, OSError):
                pass

    async def aclose(self) -> None:
        """Stop reading and make sure the child is gone."""
        self._stop_reading()
        if not self._reaped:
            self._reaped = True
            await self._loop.run_in_executor(None, self._close_child)
        pending = [t for t in self._tasks if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)


class TerminalUsageFetcher:
    """
    Acquire usage by driving the interactive CLI.

    One call is one attempt: no retries happen here.
    """

    name = "terminal"

    def __init__(
        self,
        claude_path: Optional[str] = None,
        timeout: float = DEFAULT_ACQUIRE_TIMEOUT,
        timings: Optional[EngineTimings] = None,
        rules: Sequence[PromptRule] = SETUP_PROMPT_RULES,
        cwd: Optional[str] = None,
    ):
        self._claude_path = claude_path
        self._timeout = timeout
        self._timings = timings or EngineTimings()
        self._rules = tuple(rules)
        self._cwd = cwd or str(Path.home())

    def _spawn(self, config_dir: Optional[str]) -> pexpect.spawn:
        executable = find_claude_executable(self._claude_path)
        if not executable:
            raise SpawnError("claude CLI not found (set CLAUDE_CLI_PATH)")

        try:
            return pexpect.spawn(
                executable,
                CLI_ARGS,
                cwd=self._cwd,
                env=build_child_env(config_dir),
                dimensions=(TERMINAL_ROWS, TERMINAL_COLUMNS),
                encoding="utf-8",
                codec_errors="replace",
                echo=False,
            )
        except pexpect.ExceptionPexpect as e:
            raise SpawnError(f"Failed to start {executable}: {e}") from e
        except OSError as e:
            exhausted = _is_pty_exhausted(e)
            raise SpawnError(
                f"Failed to start {executable}: {e}", pty_exhausted=exhausted
            ) from e

    async def acquire(
        self, config_dir: Optional[str], timeout: Optional[float] = None
    ) -> UsageFields:
        """
        Run one acquisition attempt.

        Args:
            config_dir: Account config directory (None for the CLI default)
            timeout: Overall budget in seconds (defaults to the fetcher's)

        Returns:
            UsageFields

        Raises:
            AcquisitionError subclass on any failure
        """
        loop = asyncio.get_running_loop()
        child = self._spawn(config_dir)
        lib_logger.debug(f"Spawned CLI pid={child.pid} for {config_dir or 'default'}")

        transport = PexpectTransport(child, loop)
        session = UsageSession(
            transport,
            timeout=timeout or self._timeout,
            timings=self._timings,
            rules=self._rules,
            loop=loop,
            label=Path(config_dir).name if config_dir else "default",
        )
        transport.attach(session)
        session.start()
        try:
            return await session.result
        finally:
            session.close()
            await transport.aclose()
