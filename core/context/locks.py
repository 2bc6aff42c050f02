"""
Comanda Context - Per-Company Locks
=====================================
Every write, and every read of derived state, for a company runs
while holding that company's lock. The event store append and all
projection updates for one event therefore form a single unit that
no reader can observe half-done.

Locks are re-entrant: the appointment bridge creates an order while
already holding the company lock.

Records without a company (legacy data) share the ``None`` key.
Multi-key acquisition always goes in one global order (orphans first,
then company ids ascending) so two sweeps can never deadlock.
"""

from __future__ import annotations

import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Iterator, Optional


def _lock_order(company_id: Optional[str]) -> tuple:
    return (company_id is not None, company_id or "")


class CompanyLockRegistry:
    """Lazily creates one RLock per company id."""

    def __init__(self) -> None:
        self._locks: Dict[Optional[str], threading.RLock] = {}
        self._guard = threading.Lock()

    def lock_for(self, company_id: Optional[str]) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(company_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[company_id] = lock
            return lock

    @contextmanager
    def hold(self, *company_ids: Optional[str]) -> Iterator[None]:
        ordered = sorted(set(company_ids), key=_lock_order)
        with ExitStack() as stack:
            for company_id in ordered:
                stack.enter_context(self.lock_for(company_id))
            yield

    def __len__(self) -> int:
        return len(self._locks)
