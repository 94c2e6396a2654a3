# tests/test_dashboard.py
from datetime import datetime, timedelta, timezone

from rich.console import Console

from monitor_app.dashboard import (
    create_progress_bar,
    describe_status,
    format_time_ago,
    render_dashboard,
)
from usage_monitor.core.types import Account, UsageFields, UsageSnapshot

NOW = datetime(2026, 3, 4, 12, 0, tzinfo=timezone.utc)


def test_progress_bar():
    assert create_progress_bar(50, width=10) == "▓" * 5 + "░" * 5
    assert create_progress_bar(None, width=4) == "░░░░"
    assert create_progress_bar(150, width=4) == "▓▓▓▓"


def test_format_time_ago():
    assert format_time_ago(None) == "Never"
    assert format_time_ago(NOW - timedelta(seconds=30), now=NOW) == "30s ago"
    assert format_time_ago(NOW - timedelta(minutes=5), now=NOW) == "5 min ago"
    assert format_time_ago(NOW - timedelta(hours=3), now=NOW) == "3h ago"
    assert format_time_ago(NOW - timedelta(days=2), now=NOW) == "2d ago"


def test_describe_status():
    account = Account(id="a", name="A", config_dir="/tmp/a")
    assert "Loading" in describe_status(None, account)
    assert "Connecting" in describe_status(
        UsageSnapshot(account_id="a", error="x", retrying=True), account
    )
    stale = UsageSnapshot.from_fields("a", UsageFields(1, "", 2, "")).as_retrying("x")
    assert "Stale" in describe_status(stale, account)
    account.is_active = False
    assert "Paused" in describe_status(stale, account)


def test_render_dashboard():
    accounts = [
        Account(id="a", name="Work", config_dir="/tmp/a"),
        Account(id="b", name="Home", config_dir="/tmp/b"),
    ]
    snapshots = [
        UsageSnapshot.from_fields("a", UsageFields(42, "2am (UTC)", 7, "Mar 4 at 8pm (UTC)")),
        UsageSnapshot(account_id="b", error="CLI exited", retrying=True),
    ]
    console = Console(record=True, width=160)
    console.print(render_dashboard(accounts, snapshots, footer="q to quit"))
    text = console.export_text()

    assert "Work" in text and "Home" in text
    assert "42%" in text
    assert "2am (UTC)" in text
    assert "CLI exited" in text
    assert "q to quit" in text
