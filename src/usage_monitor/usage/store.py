# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""In-memory, most-recent-wins snapshot cache (one snapshot per account)."""

from typing import Dict, Iterable, List, Optional

from ..core.types import UsageSnapshot


class SnapshotStore:
    """
    Latest UsageSnapshot per account.

    Written only by the scheduler; read by whatever forwards data outward.
    get_all() follows the account order last passed to retain(); accounts
    it has not seen yet come after, in the order they were first stored.
    """

    def __init__(self):
        self._snapshots: Dict[str, UsageSnapshot] = {}
        self._order: Dict[str, int] = {}

    def get_all(self) -> List[UsageSnapshot]:
        unknown = len(self._order)
        # sorted() is stable, so unknown ids keep insertion order
        return sorted(
            self._snapshots.values(),
            key=lambda s: self._order.get(s.account_id, unknown),
        )

    def get_one(self, account_id: str) -> Optional[UsageSnapshot]:
        return self._snapshots.get(account_id)

    def set(self, snapshot: UsageSnapshot) -> None:
        self._snapshots[snapshot.account_id] = snapshot

    def remove(self, account_id: str) -> None:
        self._snapshots.pop(account_id, None)

    def retain(self, account_ids: Iterable[str]) -> List[str]:
        """
        Drop snapshots of accounts not in account_ids; return dropped ids.

        account_ids also becomes the iteration order of get_all().
        """
        ordered = list(account_ids)
        self._order = {aid: index for index, aid in enumerate(ordered)}
        dropped = [aid for aid in self._snapshots if aid not in self._order]
        for aid in dropped:
            del self._snapshots[aid]
        return dropped

    def __len__(self) -> int:
        return len(self._snapshots)

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._snapshots
