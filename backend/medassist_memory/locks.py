from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class _SessionLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class SessionLocks:
    """Per-session turn locks.

    An entry lives while any caller holds or waits on it, so every caller
    for one session id shares the same lock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, _SessionLock] = {}

    def _acquire_entry(self, session_id: str) -> _SessionLock:
        with self._guard:
            entry = self._locks.get(session_id)
            if entry is None:
                entry = _SessionLock()
                self._locks[session_id] = entry
            entry.users += 1
            return entry

    def _release_entry(self, session_id: str, entry: _SessionLock) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0 and self._locks.get(session_id) is entry:
                del self._locks[session_id]

    @contextmanager
    def hold(self, session_id: str) -> Iterator[None]:
        entry = self._acquire_entry(session_id)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(session_id, entry)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
