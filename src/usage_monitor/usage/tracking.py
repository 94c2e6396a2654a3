# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Per-account bookkeeping owned by the scheduler: retry backoff and
already-fired alert thresholds.
"""

from typing import Dict, List, Optional, Sequence, Set

from ..core.constants import (
    ALERT_THRESHOLDS,
    INITIAL_BACKOFF_SECONDS,
    MAX_BACKOFF_SECONDS,
)
from ..core.types import Dimension

DIMENSIONS = ("session", "weekly")


class BackoffTracker:
    """
    Exponential backoff per account.

    The N-th consecutive failure waits min(initial * 2^(N-1), cap).
    reset() after a success brings the next delay back to initial.
    """

    def __init__(
        self,
        initial: float = INITIAL_BACKOFF_SECONDS,
        maximum: float = MAX_BACKOFF_SECONDS,
    ):
        self.initial = initial
        self.maximum = maximum
        self._next: Dict[str, float] = {}

    def next_delay(self, account_id: str) -> float:
        """Return the delay for this failure and advance the state."""
        current = self._next.get(account_id, self.initial)
        self._next[account_id] = min(current * 2, self.maximum)
        return min(current, self.maximum)

    def peek(self, account_id: str) -> Optional[float]:
        """Delay the next failure would get, None when no backoff is active."""
        return self._next.get(account_id)

    def reset(self, account_id: str) -> None:
        self._next.pop(account_id, None)

    def clear(self) -> None:
        self._next.clear()

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._next


class ThresholdTracker:
    """
    Alert thresholds already fired per account and dimension.

    Thresholds only accumulate: a lower reading never re-arms them. Only
    clear() does.
    """

    def __init__(self, thresholds: Sequence[int] = ALERT_THRESHOLDS):
        self.thresholds = tuple(sorted(thresholds))
        self._fired: Dict[str, Dict[str, Set[int]]] = {}

    def check(self, account_id: str, dimension: Dimension, value: int) -> List[int]:
        """Record and return thresholds newly reached by value."""
        record = self._fired.setdefault(account_id, {d: set() for d in DIMENSIONS})
        fired = record.setdefault(dimension, set())
        new = [t for t in self.thresholds if value >= t and t not in fired]
        fired.update(new)
        return new

    def fired(self, account_id: str, dimension: Dimension) -> Set[int]:
        return set(self._fired.get(account_id, {}).get(dimension, set()))

    def clear(self, account_id: str, dimension: Optional[Dimension] = None) -> None:
        if dimension is None:
            self._fired.pop(account_id, None)
        elif account_id in self._fired:
            self._fired[account_id][dimension] = set()
