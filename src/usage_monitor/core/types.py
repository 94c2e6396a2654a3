# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Shared type definitions for the usage monitor.

This module contains dataclasses and type definitions used across
the acquisition engine, the scheduler and the application layer.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Literal, Optional


Dimension = Literal["session", "weekly"]

# on_alert(account_name, threshold, dimension)
AlertCallback = Callable[[str, int, Dimension], None]


# =============================================================================
# ACCOUNT TYPES
# =============================================================================


@dataclass
class Account:
    """
    A monitored CLI account.

    The config_dir is handed to the CLI as CLAUDE_CONFIG_DIR and never
    changes once the account is created.
    """

    id: str
    name: str
    config_dir: str
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            config_dir=str(data["config_dir"]),
            is_active=bool(data.get("is_active", True)),
        )


# =============================================================================
# USAGE TYPES
# =============================================================================


@dataclass
class UsageFields:
    """
    Result of one successful acquisition attempt.

    Reset strings are opaque: "2am (Europe/Berlin)" from the terminal
    path, ISO-8601 from the OAuth path.
    """

    session_pct: int = 0
    session_reset: str = ""
    weekly_pct: int = 0
    weekly_reset: str = ""


@dataclass
class UsageSnapshot:
    """
    Most recent usage state for one account.

    When retrying is set, the percentages, reset strings and last_updated
    belong to the last successful acquisition, never to the failed one.
    """

    account_id: str
    session_pct: int = 0
    session_reset: str = ""
    weekly_pct: int = 0
    weekly_reset: str = ""
    last_updated: Optional[datetime] = None
    error: Optional[str] = None
    retrying: bool = False

    @classmethod
    def from_fields(
        cls, account_id: str, fields: UsageFields, updated_at: Optional[datetime] = None
    ) -> "UsageSnapshot":
        return cls(
            account_id=account_id,
            session_pct=fields.session_pct,
            session_reset=fields.session_reset,
            weekly_pct=fields.weekly_pct,
            weekly_reset=fields.weekly_reset,
            last_updated=updated_at or datetime.now().astimezone(),
        )

    def as_retrying(self, error: str) -> "UsageSnapshot":
        """Copy of this snapshot flagged as retrying, data left untouched."""
        return UsageSnapshot(
            account_id=self.account_id,
            session_pct=self.session_pct,
            session_reset=self.session_reset,
            weekly_pct=self.weekly_pct,
            weekly_reset=self.weekly_reset,
            last_updated=self.last_updated,
            error=error,
            retrying=True,
        )

    @property
    def status(self) -> str:
        """
        Display status.

        "loading": nothing has happened yet
        "connecting": retrying without ever having had data
        "stale": retrying, last good data shown
        "ok": fresh data
        """
        if self.retrying:
            return "stale" if self.last_updated else "connecting"
        if self.last_updated is None and not self.error:
            return "loading"
        return "ok"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_updated"] = (
            self.last_updated.isoformat() if self.last_updated else None
        )
        return data


# =============================================================================
# SETTINGS TYPES
# =============================================================================


@dataclass
class AppSettings:
    """Persisted settings: refresh cadence and the account list."""

    refresh_interval: int = 180  # seconds
    accounts: List[Account] = field(default_factory=list)

    @property
    def active_accounts(self) -> List[Account]:
        """Active accounts in definition order."""
        return [a for a in self.accounts if a.is_active]

    def get_account(self, account_id: str) -> Optional[Account]:
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "refresh_interval": self.refresh_interval,
            "accounts": [a.to_dict() for a in self.accounts],
        }
