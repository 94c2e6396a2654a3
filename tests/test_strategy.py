# tests/test_strategy.py
import errno

import pytest

from usage_monitor.acquisition.oauth import OAuthUsageFetcher
from usage_monitor.acquisition.strategy import FallbackFetcher, build_fetcher
from usage_monitor.acquisition.terminal import (
    TerminalUsageFetcher,
    _is_pty_exhausted,
    build_child_env,
    find_claude_executable,
)
from usage_monitor.core.config import MonitorConfig
from usage_monitor.core.errors import AcquisitionTimeoutError, CredentialsNotFoundError
from usage_monitor.core.types import UsageFields


class FailingFetcher:
    name = "failing"

    def __init__(self, error):
        self.error = error
        self.calls = 0

    async def acquire(self, config_dir, timeout=None):
        self.calls += 1
        raise self.error


class FixedFetcher:
    name = "fixed"

    async def acquire(self, config_dir, timeout=None):
        return UsageFields(1, "", 2, "")


@pytest.mark.asyncio
async def test_fallback_uses_next_strategy():
    first = FailingFetcher(AcquisitionTimeoutError("slow"))
    fetcher = FallbackFetcher([first, FixedFetcher()])
    fields = await fetcher.acquire("/tmp/x")
    assert (fields.session_pct, fields.weekly_pct) == (1, 2)
    assert first.calls == 1


@pytest.mark.asyncio
async def test_fallback_raises_last_error():
    fetcher = FallbackFetcher(
        [
            FailingFetcher(AcquisitionTimeoutError("slow")),
            FailingFetcher(CredentialsNotFoundError("no token")),
        ]
    )
    with pytest.raises(CredentialsNotFoundError):
        await fetcher.acquire("/tmp/x")


def test_build_fetcher(tmp_path):
    single = build_fetcher(MonitorConfig(data_dir=tmp_path))
    assert isinstance(single, TerminalUsageFetcher)

    chain = build_fetcher(MonitorConfig(data_dir=tmp_path, strategies=["terminal", "oauth"]))
    assert isinstance(chain, FallbackFetcher)

    oauth = build_fetcher(MonitorConfig(data_dir=tmp_path, strategies=["oauth"]))
    assert isinstance(oauth, OAuthUsageFetcher)


def test_child_env_drops_nested_session_markers():
    env = build_child_env(
        "/tmp/acct", {"PATH": "/bin", "CLAUDECODE": "1", "CLAUDE_CODE_ENTRYPOINT": "cli"}
    )
    assert env["CLAUDE_CONFIG_DIR"] == "/tmp/acct"
    assert env["PATH"] == "/bin"
    assert "CLAUDECODE" not in env
    assert "CLAUDE_CODE_ENTRYPOINT" not in env


def test_find_explicit_executable(tmp_path):
    exe = tmp_path / "claude"
    exe.write_text("#!/bin/sh\n")
    exe.chmod(0o755)
    assert find_claude_executable(str(exe)) == str(exe)
    assert find_claude_executable(str(tmp_path / "missing")) is None


def test_pty_exhaustion_detection():
    assert _is_pty_exhausted(OSError(errno.ENOSPC, "No space left on device"))
    assert _is_pty_exhausted(OSError("out of pty devices"))
    assert not _is_pty_exhausted(OSError(errno.ENOENT, "No such file"))
