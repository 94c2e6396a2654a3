# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""
Rich rendering of usage snapshots.

Pure functions only: the caller decides whether the table goes to a
Live display, a one-shot print, or a test console.
"""

from datetime import datetime
from typing import Dict, List, Optional

from rich.console import Group
from rich.table import Table
from rich.text import Text

from usage_monitor.core.types import Account, UsageSnapshot


# =============================================================================
# DISPLAY CONFIGURATION
# =============================================================================

BAR_WIDTH = 20
TABLE_ACCOUNT_WIDTH = 14

# Gauge colors by percentage used: (lower bound, color)
USAGE_COLORS = ((90, "red"), (80, "yellow"), (0, "green"))

# status -> (icon, label, color)
STATUS_DISPLAY = {
    "ok": (":white_check_mark:", "OK", "green"),
    "stale": (":warning:", "Stale", "yellow"),
    "connecting": (":hourglass_flowing_sand:", "Connecting", "yellow"),
    "loading": (":hourglass_flowing_sand:", "Loading", "dim"),
    "paused": (":pause_button:", "Paused", "dim"),
}

# =============================================================================


def format_time_ago(timestamp: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Format a timestamp as relative time (e.g., '5 min ago')."""
    if timestamp is None:
        return "Never"
    now = now or datetime.now().astimezone()
    delta = (now - timestamp).total_seconds()
    if delta < 0:
        delta = 0
    if delta < 60:
        return f"{int(delta)}s ago"
    elif delta < 3600:
        return f"{int(delta / 60)} min ago"
    elif delta < 86400:
        return f"{int(delta / 3600)}h ago"
    return f"{int(delta / 86400)}d ago"


def create_progress_bar(percent: Optional[int], width: int = BAR_WIDTH) -> str:
    """Create a text-based progress bar."""
    if percent is None:
        return "░" * width
    percent = max(0, min(100, percent))
    filled = int(percent / 100 * width)
    return "▓" * filled + "░" * (width - filled)


def usage_color(percent: int) -> str:
    for bound, color in USAGE_COLORS:
        if percent >= bound:
            return color
    return "green"


def describe_status(
    snapshot: Optional[UsageSnapshot], account: Optional[Account] = None
) -> str:
    """Status cell markup for an account row."""
    if account is not None and not account.is_active:
        status = "paused"
    elif snapshot is None:
        status = "loading"
    else:
        status = snapshot.status

    icon, label, color = STATUS_DISPLAY[status]
    text = f"[{color}]{icon} {label}[/{color}]"
    if snapshot is not None and status in ("ok", "stale") and snapshot.last_updated:
        text += f" [dim]({format_time_ago(snapshot.last_updated)})[/dim]"
    return text


def _gauge(percent: int, has_data: bool) -> Text:
    if not has_data:
        return Text(create_progress_bar(None) + "   -", style="dim")
    color = usage_color(percent)
    return Text.assemble(
        (create_progress_bar(percent), color), (f" {percent:>3}%", f"bold {color}")
    )


def render_dashboard(
    accounts: List[Account],
    snapshots: List[UsageSnapshot],
    title: str = "Claude Usage",
    footer: Optional[str] = None,
):
    """
    Build the usage table.

    Args:
        accounts: All configured accounts, in display order
        snapshots: Latest snapshots (from the scheduler's store)
        title: Table title
        footer: Optional hint line under the table

    Returns:
        A rich renderable
    """
    by_id: Dict[str, UsageSnapshot] = {s.account_id: s for s in snapshots}

    table = Table(title=title, header_style="bold", padding=(0, 1))
    table.add_column("Account", style="cyan", min_width=TABLE_ACCOUNT_WIDTH)
    table.add_column("Session")
    table.add_column("Session Resets")
    table.add_column("Weekly")
    table.add_column("Weekly Resets")
    table.add_column("Status")

    for account in accounts:
        snapshot = by_id.get(account.id)
        has_data = snapshot is not None and snapshot.last_updated is not None
        table.add_row(
            account.name,
            _gauge(snapshot.session_pct if has_data else 0, has_data),
            (snapshot.session_reset if has_data else "") or "-",
            _gauge(snapshot.weekly_pct if has_data else 0, has_data),
            (snapshot.weekly_reset if has_data else "") or "-",
            describe_status(snapshot, account),
        )

    if not accounts:
        table.add_row("[dim]No accounts configured[/dim]", "", "", "", "", "")

    parts = [table]
    for account in accounts:
        snapshot = by_id.get(account.id)
        if snapshot is not None and snapshot.error:
            # Error text comes from the CLI; keep it out of markup parsing
            parts.append(Text.assemble((f"{account.name}: ", "red"), snapshot.error))
    if footer:
        parts.append(Text.from_markup(f"[dim]{footer}[/dim]"))
    return Group(*parts)
