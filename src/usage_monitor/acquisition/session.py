# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
State machine for one interactive usage acquisition.

UsageSession knows nothing about pseudo-terminals. A transport feeds it
output chunks and process-exit notifications; the session answers with
keystrokes, an interrupt and a termination request. Outcome is exposed
as an asyncio future that resolves exactly once.

Lifecycle:
    SPAWNED -> PROMPT_SCAN -> MAIN_PROMPT -> AWAITING_RESULT
            -> DECIDED -> SETTLED

A decision (success or failure) is latched once. The session settles
only when a decision exists AND the child has exited (or the exit
safety timer ran out), so the caller is never resolved while the child
still owns the terminal and never resolved twice.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, Sequence, Set

from ..core.constants import (
    COMMAND_SUBMIT_DELAY,
    DEFAULT_ACQUIRE_TIMEOUT,
    EXIT_WAIT_TIMEOUT,
    KEY_SEQUENCE_GAP,
    MAIN_PROMPT_SETTLE,
    PROMPT_KEY_DELAY,
    SUCCESS_KILL_GRACE,
    USAGE_COMMAND,
)
from ..core.errors import (
    AcquisitionError,
    AcquisitionTimeoutError,
    ProcessExitError,
    ProtocolDriftError,
)
from ..core.types import UsageFields
from .prompts import (
    COMMAND_MENU_RULE,
    ENTER,
    SETUP_PROMPT_RULES,
    PromptRule,
    has_main_prompt,
)
from .sanitizer import count_used_markers, parse_clean_output, strip_ansi

lib_logger = logging.getLogger("usage_monitor")


class SessionTransport(Protocol):
    """What the session needs from the process it drives."""

    def write(self, data: str) -> None: ...

    def interrupt(self) -> None: ...

    def terminate(self) -> None: ...


class Phase(str, Enum):
    SPAWNED = "spawned"
    PROMPT_SCAN = "prompt_scan"
    MAIN_PROMPT = "main_prompt"
    AWAITING_RESULT = "awaiting_result"
    DECIDED = "decided"
    SETTLED = "settled"


@dataclass
class EngineTimings:
    """Delays used while driving the CLI (seconds)."""

    prompt_key_delay: float = PROMPT_KEY_DELAY
    key_sequence_gap: float = KEY_SEQUENCE_GAP
    main_prompt_settle: float = MAIN_PROMPT_SETTLE
    command_submit_delay: float = COMMAND_SUBMIT_DELAY
    success_kill_grace: float = SUCCESS_KILL_GRACE
    exit_wait_timeout: float = EXIT_WAIT_TIMEOUT


class UsageSession:
    """
    Drives one CLI session from first output to a settled result.

    Usage:
        session = UsageSession(transport, timeout=60)
        session.start()
        # transport calls session.feed(chunk) / session.process_exited(...)
        fields = await session.result
    """

    def __init__(
        self,
        transport: SessionTransport,
        timeout: float = DEFAULT_ACQUIRE_TIMEOUT,
        timings: Optional[EngineTimings] = None,
        rules: Sequence[PromptRule] = SETUP_PROMPT_RULES,
        command: str = USAGE_COMMAND,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        label: str = "",
    ):
        self._transport = transport
        self._timeout = timeout
        self._timings = timings or EngineTimings()
        self._rules = tuple(rules)
        self._command = command
        self._loop = loop or asyncio.get_running_loop()
        self._label = label or "default"

        self.result: "asyncio.Future[UsageFields]" = self._loop.create_future()
        self.phase = Phase.SPAWNED

        self._raw = ""
        self._fired: Set[str] = set()
        self.last_action: Optional[str] = None
        self.sent: List[str] = []

        self._main_prompt_seen = False
        self._command_sent = False

        self._decided = False
        self._outcome: Optional[UsageFields] = None
        self._error: Optional[AcquisitionError] = None
        self._exited = False
        self._exit_wait_expired = False
        self._settled = False

        self._key_timers: List[asyncio.TimerHandle] = []
        self._timeout_handle: Optional[asyncio.TimerHandle] = None
        self._terminate_handle: Optional[asyncio.TimerHandle] = None
        self._exit_wait_handle: Optional[asyncio.TimerHandle] = None

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    @property
    def output(self) -> str:
        """Raw accumulated output."""
        return self._raw

    @property
    def fired_rules(self) -> Set[str]:
        return set(self._fired)

    @property
    def decided(self) -> bool:
        return self._decided

    @property
    def settled(self) -> bool:
        return self._settled

    def start(self) -> None:
        """Arm the overall timeout."""
        self._timeout_handle = self._loop.call_later(self._timeout, self._on_timeout)

    def feed(self, chunk: str) -> None:
        """Process one chunk of output from the child."""
        if self._settled:
            return
        if self.phase == Phase.SPAWNED:
            self.phase = Phase.PROMPT_SCAN
        self._raw += chunk

        # After a decision the output is only drained
        if self._decided:
            return

        cleaned = strip_ansi(self._raw)

        for rule in self._rules:
            if rule.name not in self._fired and rule.matches(cleaned):
                self._fire(rule)
                return

        if not self._command_sent:
            if has_main_prompt(cleaned):
                self._on_main_prompt()
            return

        if COMMAND_MENU_RULE.name not in self._fired and COMMAND_MENU_RULE.matches(
            cleaned
        ):
            self._fire(COMMAND_MENU_RULE)
            return

        if count_used_markers(cleaned) >= 2:
            fields = parse_clean_output(cleaned)
            if fields is not None:
                lib_logger.debug(
                    f"[{self._label}] usage found: session={fields.session_pct}% "
                    f"weekly={fields.weekly_pct}%"
                )
                self._interrupt()
                self._decide(fields, None)

    def process_exited(
        self, exit_status: Optional[int] = None, signal_status: Optional[int] = None
    ) -> None:
        """Called once the child process has terminated."""
        if self._exited or self._settled:
            return
        self._exited = True

        if not self._decided:
            # Unexpected exit: the output may still hold a full report
            fields = parse_clean_output(strip_ansi(self._raw))
            if fields is not None:
                self._decide(fields, None)
            else:
                self._decide(
                    None,
                    ProcessExitError(
                        f"CLI exited before usage was shown "
                        f"(exit={exit_status}, signal={signal_status}, "
                        f"phase={self.phase.value})",
                        exit_status=exit_status,
                        signal_status=signal_status,
                    ),
                )
        self._try_settle()

    def abort(self, error: AcquisitionError) -> None:
        """Decide failure from outside (e.g. the transport broke)."""
        self._decide(None, error)

    def close(self) -> None:
        """Cancel every timer; an unsettled result is cancelled too."""
        self._cancel_timers()
        if not self._settled:
            self._settled = True
            self.phase = Phase.SETTLED
            if not self.result.done():
                self.result.cancel()

    # =========================================================================
    # PROMPT HANDLING
    # =========================================================================

    def _fire(self, rule: PromptRule) -> None:
        self._fired.add(rule.name)
        self.last_action = rule.name
        lib_logger.debug(f"[{self._label}] prompt '{rule.name}' detected")

        delay = self._timings.prompt_key_delay
        for key in rule.keys:
            self._schedule_write(delay, key)
            delay += self._timings.key_sequence_gap

    def _on_main_prompt(self) -> None:
        self._main_prompt_seen = True
        self._command_sent = True
        self.phase = Phase.MAIN_PROMPT
        lib_logger.debug(f"[{self._label}] main prompt reached, sending {self._command}")

        settle = self._timings.main_prompt_settle
        self._schedule_write(settle, self._command, command=True)
        self._schedule_write(settle + self._timings.command_submit_delay, ENTER)

    def _schedule_write(self, delay: float, data: str, command: bool = False) -> None:
        handle = self._loop.call_later(delay, self._write, data, command)
        self._key_timers.append(handle)

    def _write(self, data: str, command: bool = False) -> None:
        if self._decided:
            return
        try:
            self._transport.write(data)
        except OSError as e:
            lib_logger.debug(f"[{self._label}] write failed: {e}")
            return
        self.sent.append(data)
        if command:
            self.phase = Phase.AWAITING_RESULT

    def _interrupt(self) -> None:
        try:
            self._transport.interrupt()
        except OSError as e:
            # The process is killed anyway
            lib_logger.debug(f"[{self._label}] interrupt failed: {e}")

    # =========================================================================
    # DECISION AND SETTLEMENT
    # =========================================================================

    def _on_timeout(self) -> None:
        self._timeout_handle = None
        if self._decided:
            return

        # Chunked checks can miss a complete report; look once more
        fields = parse_clean_output(strip_ansi(self._raw))
        if fields is not None:
            lib_logger.info(f"[{self._label}] timeout reached, accepting parsed usage")
            self._interrupt()
            self._decide(fields, None)
            return

        phase = self.phase.value
        if not self._main_prompt_seen:
            error: AcquisitionError = ProtocolDriftError(
                f"Main prompt not reached within {self._timeout:.0f}s "
                f"(last prompt: {self.last_action or 'none'})",
                phase=phase,
            )
        else:
            error = AcquisitionTimeoutError(
                f"Timeout waiting for usage data ({self._timeout:.0f}s)", phase=phase
            )
        self._decide(None, error)

    def _decide(
        self, fields: Optional[UsageFields], error: Optional[AcquisitionError]
    ) -> None:
        if self._decided or self._settled:
            return
        self._decided = True
        self._outcome = fields
        self._error = error
        self.phase = Phase.DECIDED

        for handle in self._key_timers:
            handle.cancel()
        self._key_timers.clear()
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

        if self._exited:
            self._try_settle()
            return

        grace = self._timings.success_kill_grace if fields is not None else 0.0
        if grace > 0:
            self._terminate_handle = self._loop.call_later(grace, self._request_terminate)
        else:
            self._request_terminate()
        self._exit_wait_handle = self._loop.call_later(
            grace + self._timings.exit_wait_timeout, self._on_exit_wait_expired
        )

    def _request_terminate(self) -> None:
        self._terminate_handle = None
        try:
            self._transport.terminate()
        except OSError as e:
            lib_logger.debug(f"[{self._label}] terminate failed: {e}")

    def _on_exit_wait_expired(self) -> None:
        self._exit_wait_handle = None
        if self._exited:
            return
        lib_logger.warning(f"[{self._label}] CLI did not exit in time, giving up on it")
        self._exit_wait_expired = True
        self._try_settle()

    def _try_settle(self) -> None:
        if self._settled or not self._decided:
            return
        if not (self._exited or self._exit_wait_expired):
            return

        self._settled = True
        self.phase = Phase.SETTLED
        self._cancel_timers()

        if self.result.done():
            return
        if self._error is not None:
            self.result.set_exception(self._error)
        else:
            self.result.set_result(self._outcome or UsageFields())

    def _cancel_timers(self) -> None:
        for handle in self._key_timers:
            handle.cancel()
        self._key_timers.clear()
        for attr in ("_timeout_handle", "_terminate_handle", "_exit_wait_handle"):
            handle = getattr(self, attr)
            if handle is not None:
                handle.cancel()
                setattr(self, attr, None)
