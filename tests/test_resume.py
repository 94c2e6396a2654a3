# tests/test_resume.py
import pytest

from usage_monitor.usage.resume import ResumeWatcher


class Clocks:
    def __init__(self):
        self.wall = 1000.0
        self.mono = 50.0

    def advance(self, wall, mono=None):
        self.wall += wall
        self.mono += wall if mono is None else mono


def make_watcher(callback, clocks):
    return ResumeWatcher(
        callback,
        check_interval=15,
        threshold=30,
        wall_clock=lambda: clocks.wall,
        monotonic_clock=lambda: clocks.mono,
    )


def test_normal_tick_is_not_a_resume():
    calls = []
    clocks = Clocks()
    watcher = make_watcher(lambda: calls.append(1), clocks)
    watcher.mark()
    clocks.advance(15)
    assert not watcher.check()
    assert calls == []


def test_clock_jump_triggers_callback_once():
    calls = []
    clocks = Clocks()
    watcher = make_watcher(lambda: calls.append(1), clocks)
    watcher.mark()

    # Asleep for an hour: wall clock moved, monotonic clock did not
    clocks.advance(3600, mono=15)
    assert watcher.check()
    clocks.advance(15)
    assert not watcher.check()
    assert calls == [1]


def test_callback_errors_are_contained():
    clocks = Clocks()

    def broken():
        raise RuntimeError("boom")

    watcher = make_watcher(broken, clocks)
    watcher.mark()
    clocks.advance(600, mono=0)
    assert watcher.check()


@pytest.mark.asyncio
async def test_start_and_stop():
    watcher = ResumeWatcher(lambda: None, check_interval=0.01)
    watcher.start()
    assert watcher.is_running
    await watcher.stop()
    assert not watcher.is_running
