"""
RequestLockRegistry -- per-request exclusive ownership.

Responsibility:
    Serializes every mutating engine call for the same request id inside
    one process.  Calls for different requests never contend.  Combined
    with ``SELECT ... FOR UPDATE`` on the request row (PostgreSQL) and the
    compare-and-swap on the approval status, this prevents two approvers,
    or a decide racing a submit, from double-advancing a level.

Guarantees:
    - The lock is held across the caller's whole transaction, commit
      included, so the next holder always observes the committed state.
    - Lock entries are reference counted and dropped when the last holder
      releases, so the registry does not grow with the number of requests.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Generator
from uuid import UUID


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class RequestLockRegistry:
    """Registry of per-request locks."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[UUID, _Entry] = {}

    @contextmanager
    def hold(self, request_id: UUID) -> Generator[None, None, None]:
        """Hold the exclusive lock for ``request_id`` for the block."""
        with self._guard:
            entry = self._entries.get(request_id)
            if entry is None:
                entry = _Entry()
                self._entries[request_id] = entry
            entry.holders += 1

        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[request_id]

    def active_count(self) -> int:
        """Number of requests currently held or waited on."""
        with self._guard:
            return len(self._entries)
