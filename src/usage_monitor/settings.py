# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Persistent settings: refresh interval and the account list.

Stored as JSON in <data_dir>/settings.json:

    {
      "refresh_interval": 180,
      "accounts": [
        {"id": "...", "name": "Work", "config_dir": "/home/me/.claude-1a2b3c4d",
         "is_active": true}
      ]
    }
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Optional

from .core.constants import DEFAULT_REFRESH_INTERVAL, MIN_REFRESH_INTERVAL
from .core.types import Account, AppSettings

lib_logger = logging.getLogger("usage_monitor")


class SettingsStore:
    """
    Load and save AppSettings.

    Every mutator loads the current file, applies the change and saves
    atomically, so the scheduler's per-round load() always sees the
    latest state.
    """

    def __init__(self, path: Path, home: Optional[Path] = None):
        self.path = Path(path)
        self._home = Path(home) if home is not None else Path.home()

    # =========================================================================
    # LOAD / SAVE
    # =========================================================================

    def load(self) -> AppSettings:
        """Read settings, falling back to defaults on a missing or bad file."""
        if not self.path.exists():
            return AppSettings()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            lib_logger.warning(f"Could not read settings from {self.path}: {e}")
            return AppSettings()

        if not isinstance(data, dict):
            lib_logger.warning(f"Ignoring malformed settings file {self.path}")
            return AppSettings()

        accounts = []
        for entry in data.get("accounts") or []:
            try:
                accounts.append(Account.from_dict(entry))
            except (KeyError, TypeError) as e:
                lib_logger.warning(f"Skipping malformed account entry: {e}")

        interval = data.get("refresh_interval", DEFAULT_REFRESH_INTERVAL)
        if not isinstance(interval, (int, float)) or isinstance(interval, bool):
            interval = DEFAULT_REFRESH_INTERVAL

        return AppSettings(
            refresh_interval=max(MIN_REFRESH_INTERVAL, int(interval)),
            accounts=accounts,
        )

    def save(self, settings: AppSettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)
        temp_path.replace(self.path)
        lib_logger.debug(f"Saved settings to {self.path}")

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def create_account(self, name: str, use_existing: bool = False) -> Account:
        """
        Add an account.

        Args:
            name: Display name
            use_existing: Reuse the CLI's default ~/.claude directory
                (already logged in) instead of creating a fresh one

        Returns:
            The new Account. A fresh config directory still needs a
            `claude` login before acquisition can succeed.
        """
        account_id = str(uuid.uuid4())
        if use_existing:
            config_dir = self._home / ".claude"
        else:
            config_dir = self._home / f".claude-{account_id[:8]}"
            config_dir.mkdir(parents=True, exist_ok=True)

        account = Account(
            id=account_id,
            name=name.strip() or account_id[:8],
            config_dir=str(config_dir),
        )
        settings = self.load()
        settings.accounts.append(account)
        self.save(settings)
        lib_logger.info(f"Added account '{account.name}' ({config_dir})")
        return account

    def remove_account(self, account_id: str) -> bool:
        """Remove an account. The config directory is left on disk."""
        settings = self.load()
        remaining = [a for a in settings.accounts if a.id != account_id]
        if len(remaining) == len(settings.accounts):
            return False
        settings.accounts = remaining
        self.save(settings)
        lib_logger.info(f"Removed account {account_id}")
        return True

    def rename_account(self, account_id: str, name: str) -> bool:
        settings = self.load()
        account = settings.get_account(account_id)
        if account is None or not name.strip():
            return False
        account.name = name.strip()
        self.save(settings)
        return True

    def set_account_active(self, account_id: str, active: bool) -> bool:
        settings = self.load()
        account = settings.get_account(account_id)
        if account is None:
            return False
        account.is_active = active
        self.save(settings)
        return True

    def set_refresh_interval(self, seconds: int) -> int:
        """Store a new cadence, clamped to the minimum. Returns the stored value."""
        settings = self.load()
        settings.refresh_interval = max(MIN_REFRESH_INTERVAL, int(seconds))
        self.save(settings)
        return settings.refresh_interval
