# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mirrowel

"""Interactive account management."""

from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from usage_monitor.core.constants import MIN_REFRESH_INTERVAL, REFRESH_INTERVAL_OPTIONS
from usage_monitor.core.types import Account
from usage_monitor.settings import SettingsStore

console = Console()


def clear_screen(subtitle: str = "Manage Accounts"):
    """Clear the terminal and show the header panel."""
    console.clear()
    console.print(
        Panel(f"[bold cyan]{subtitle}[/bold cyan]", title="--- Claude Usage Monitor ---")
    )


def login_command(account: Account) -> str:
    """Shell command that logs the CLI into this account's config dir."""
    return f"CLAUDE_CONFIG_DIR={account.config_dir} claude"


def _display_accounts(store: SettingsStore) -> List[Account]:
    settings = store.load()
    table = Table(box=None, padding=(0, 2))
    table.add_column("#", style="dim", width=3)
    table.add_column("Name", style="cyan")
    table.add_column("Active")
    table.add_column("Config Dir", style="dim")

    for idx, account in enumerate(settings.accounts, 1):
        active = "[green]yes[/green]" if account.is_active else "[dim]no[/dim]"
        table.add_row(str(idx), account.name, active, account.config_dir)

    if settings.accounts:
        console.print(table)
    else:
        console.print("[bold yellow]No accounts configured.[/bold yellow]")
    console.print(f"\nRefresh interval: [bold]{settings.refresh_interval}s[/bold]")
    return settings.accounts


def _pick_account(accounts: List[Account], verb: str) -> Optional[Account]:
    if not accounts:
        console.print("[bold yellow]No accounts configured.[/bold yellow]")
        return None
    choice = Prompt.ask(
        Text.from_markup(
            f"[bold]Select account to {verb} or type [red]'b'[/red] to go back[/bold]"
        ),
        choices=[str(i) for i in range(1, len(accounts) + 1)] + ["b"],
        show_choices=False,
    )
    if choice.lower() == "b":
        return None
    return accounts[int(choice) - 1]


def _add_account(store: SettingsStore) -> None:
    name = Prompt.ask("Account name")
    use_existing = Confirm.ask(
        "Use the default [cyan]~/.claude[/cyan] directory (already logged in)?",
        default=False,
    )
    account = store.create_account(name, use_existing=use_existing)
    text = f"Added [cyan]{account.name}[/cyan]"
    if not use_existing:
        text += (
            "\n\nLog in once with:\n"
            f"[bold yellow]{login_command(account)}[/bold yellow]"
        )
    console.print(Panel(text, style="bold green", title="Success", expand=False))


def _remove_account(store: SettingsStore, accounts: List[Account]) -> None:
    account = _pick_account(accounts, "remove")
    if account is None:
        return
    if not Confirm.ask(f"[bold red]Remove[/bold red] [cyan]{account.name}[/cyan]?"):
        console.print("[dim]Removal cancelled.[/dim]")
        return
    store.remove_account(account.id)
    console.print(
        f"Removed [cyan]{account.name}[/cyan] "
        f"[dim](config dir left at {account.config_dir})[/dim]"
    )


def _rename_account(store: SettingsStore, accounts: List[Account]) -> None:
    account = _pick_account(accounts, "rename")
    if account is None:
        return
    name = Prompt.ask("New name", default=account.name)
    if store.rename_account(account.id, name):
        console.print(f"Renamed to [cyan]{name.strip()}[/cyan]")


def _toggle_account(store: SettingsStore, accounts: List[Account]) -> None:
    account = _pick_account(accounts, "enable/disable")
    if account is None:
        return
    store.set_account_active(account.id, not account.is_active)
    state = "disabled" if account.is_active else "enabled"
    console.print(f"[cyan]{account.name}[/cyan] {state}")


def _set_interval(store: SettingsStore) -> None:
    choices = [str(s) for s in REFRESH_INTERVAL_OPTIONS]
    seconds = Prompt.ask("Refresh interval (seconds)", choices=choices, default="180")
    stored = store.set_refresh_interval(max(MIN_REFRESH_INTERVAL, int(seconds)))
    console.print(f"Refresh interval set to [bold]{stored}s[/bold]")


def manage_accounts(store: SettingsStore) -> None:
    """Main account menu loop."""
    while True:
        clear_screen()
        accounts = _display_accounts(store)

        console.print(
            Panel(
                Text.from_markup(
                    "[bold]Actions:[/bold]\n"
                    "1. Add account\n"
                    "2. Remove account\n"
                    "3. Rename account\n"
                    "4. Enable / disable account\n"
                    "5. Set refresh interval"
                ),
                title="Choose action",
                style="bold blue",
            )
        )

        action = Prompt.ask(
            Text.from_markup("[bold]Select an option or type [red]'q'[/red] to quit[/bold]"),
            choices=["1", "2", "3", "4", "5", "q"],
            show_choices=False,
        )

        if action.lower() == "q":
            break

        try:
            if action == "1":
                _add_account(store)
            elif action == "2":
                _remove_account(store, accounts)
            elif action == "3":
                _rename_account(store, accounts)
            elif action == "4":
                _toggle_account(store, accounts)
            elif action == "5":
                _set_interval(store)
        except OSError as e:
            console.print(f"[bold red]Error: {e}[/bold red]")

        console.print("\n[dim]Press Enter to continue...[/dim]")
        input()
