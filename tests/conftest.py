# tests/conftest.py
import asyncio

import pytest

from usage_monitor.core.types import Account, AppSettings, UsageFields

USAGE_PANEL = (
    "\x1b[2J\x1b[H\x1b[1mCurrent session\x1b[0m\r\n"
    "\x1b[38;5;111m█████████\x1b[0m 42% used\r\n"
    "Resets 2am (Europe/Berlin)\r\n\r\n"
    "\x1b[1mCurrent week (all models)\x1b[0m\r\n"
    "█ 7% used\r\n"
    "Resets Mar 4 at 8pm (Europe/Berlin)\r\n"
)


async def pump(seconds: float = 0.01):
    """Let zero-delay timers and pending callbacks run."""
    await asyncio.sleep(seconds)


async def wait_until(predicate, timeout: float = 2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


class DummyFetcher:
    """
    Scripted fetcher: outcomes per config dir, consumed in order.

    An outcome is UsageFields, an exception instance, or an asyncio.Event
    the call blocks on before returning `default`.
    """

    def __init__(self, outcomes=None, default=None):
        self.outcomes = {k: list(v) for k, v in (outcomes or {}).items()}
        self.default = default or UsageFields(10, "2am (UTC)", 5, "Mar 4 at 8pm (UTC)")
        self.calls = []

    async def acquire(self, config_dir, timeout=None):
        self.calls.append(config_dir)
        await asyncio.sleep(0)
        queue = self.outcomes.get(config_dir) or []
        outcome = queue.pop(0) if queue else self.default
        if isinstance(outcome, asyncio.Event):
            await outcome.wait()
            return self.default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def make_settings(*names, interval=180):
    accounts = [
        Account(id=f"id-{name}", name=name, config_dir=f"/tmp/{name}") for name in names
    ]
    return AppSettings(refresh_interval=interval, accounts=accounts)


@pytest.fixture
def settings_one():
    return make_settings("work")
