# tests/test_terminal.py
import asyncio
import errno
import os
import sys

import pytest

from usage_monitor.acquisition.session import EngineTimings, UsageSession
from usage_monitor.acquisition.terminal import PexpectTransport, TerminalUsageFetcher
from usage_monitor.core.errors import AcquisitionError, ProcessExitError, SpawnError
from usage_monitor.core.types import UsageFields

pytestmark = pytest.mark.skipif(
    sys.platform == "win32", reason="pexpect.spawn needs a Unix pseudo-terminal"
)

FAST_TIMINGS = EngineTimings(
    prompt_key_delay=0.05,
    key_sequence_gap=0.02,
    main_prompt_settle=0.05,
    command_submit_delay=0.05,
    success_kill_grace=0.05,
    exit_wait_timeout=2.0,
)

# Stands in for the CLI: trust screen, main prompt, then the usage panel.
# The trailing sleep keeps it alive until it is interrupted or killed.
FAKE_CLI = """#!/bin/sh
printf 'Do you trust this folder?\\r\\n 1. Yes, proceed\\r\\n 2. No, exit\\r\\n'
read answer
printf 'Welcome back!\\r\\n> '
read cmd
printf 'Current session\\r\\n 42%% used\\r\\nResets 2am (UTC)\\r\\n'
printf 'Current week (all models)\\r\\n 7%% used\\r\\nResets Mar 4 at 8pm (UTC)\\r\\n'
sleep 5
"""


def write_script(tmp_path, body, name="claude"):
    path = tmp_path / name
    path.write_text(body)
    path.chmod(0o755)
    return path


def make_fetcher(tmp_path, claude_path):
    return TerminalUsageFetcher(
        claude_path=str(claude_path),
        timeout=10,
        timings=FAST_TIMINGS,
        cwd=str(tmp_path),
    )


@pytest.mark.asyncio
async def test_acquire_walks_prompts_to_usage(tmp_path):
    script = write_script(tmp_path, FAKE_CLI)
    fetcher = make_fetcher(tmp_path, script)

    fields = await fetcher.acquire(str(tmp_path / "config"))
    assert fields == UsageFields(42, "2am (UTC)", 7, "Mar 4 at 8pm (UTC)")


@pytest.mark.asyncio
async def test_acquire_reports_early_exit(tmp_path):
    script = write_script(tmp_path, "#!/bin/sh\nexit 3\n")
    fetcher = make_fetcher(tmp_path, script)

    with pytest.raises(ProcessExitError) as excinfo:
        await fetcher.acquire(str(tmp_path / "config"))
    assert excinfo.value.exit_status == 3


@pytest.mark.asyncio
async def test_acquire_missing_executable(tmp_path):
    fetcher = make_fetcher(tmp_path, tmp_path / "no-such-claude")

    with pytest.raises(SpawnError) as excinfo:
        await fetcher.acquire(str(tmp_path / "config"))
    assert not excinfo.value.pty_exhausted


class BrokenChild:
    """A pexpect child whose terminal read fails with a real I/O error."""

    exitstatus = None
    signalstatus = 9

    def __init__(self, fd):
        self.child_fd = fd
        self.closed = False

    def read_nonblocking(self, size, timeout=None):
        raise OSError(errno.EBADF, "Bad file descriptor")

    def send(self, data):
        return len(data)

    def sendintr(self):
        pass

    def isalive(self):
        return False

    def terminate(self, force=False):
        return True

    def close(self, force=False):
        self.closed = True


@pytest.mark.asyncio
async def test_read_error_fails_the_session():
    loop = asyncio.get_running_loop()
    read_fd, write_fd = os.pipe()
    try:
        child = BrokenChild(read_fd)
        transport = PexpectTransport(child, loop)
        session = UsageSession(transport, timeout=5, timings=FAST_TIMINGS, loop=loop)
        transport.attach(session)
        session.start()

        transport._on_readable()
        with pytest.raises(AcquisitionError, match="Terminal read failed"):
            await asyncio.wait_for(session.result, timeout=2)

        session.close()
        await transport.aclose()
        assert child.closed
    finally:
        os.close(read_fd)
        os.close(write_fd)
