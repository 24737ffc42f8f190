from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from medassist_memory.session_store import SessionStore

from .models import SessionContext

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    context: SessionContext
    source: str

    @property
    def is_new(self) -> bool:
        return self.source == "new"


class ContextCache:
    def __init__(self, store: SessionStore) -> None:
        self.store = store
        self._lock = threading.Lock()
        self._contexts: dict[str, SessionContext] = {}

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._contexts

    def __len__(self) -> int:
        with self._lock:
            return len(self._contexts)

    def peek(self, session_id: str) -> SessionContext | None:
        with self._lock:
            return self._contexts.get(session_id)

    def contexts(self) -> list[SessionContext]:
        with self._lock:
            return list(self._contexts.values())

    def evict(self, session_id: str) -> bool:
        with self._lock:
            return self._contexts.pop(session_id, None) is not None

    def _hydrate(self, session_id: str) -> SessionContext | None:
        try:
            record = self.store.get(session_id)
        except Exception as exc:
            logger.warning("session store read failed for %s: %s", session_id, exc)
            return None
        if not record:
            return None
        try:
            return SessionContext.from_record(record)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("session record for %s could not be hydrated: %s", session_id, exc)
            return None

    def load(self, session_id: str, *, create: bool = True) -> CacheEntry | None:
        cached = self.peek(session_id)
        if cached is not None:
            return CacheEntry(cached, "cache")

        hydrated = self._hydrate(session_id)
        if hydrated is not None:
            with self._lock:
                context = self._contexts.setdefault(session_id, hydrated)
            return CacheEntry(context, "store")

        if not create:
            return None

        fresh = SessionContext(session_id=session_id)
        with self._lock:
            context = self._contexts.setdefault(session_id, fresh)
        if context is fresh:
            try:
                self.store.create(session_id, fresh.profile.as_dict(), fresh.to_metadata())
            except Exception as exc:
                logger.warning("session store create failed for %s: %s", session_id, exc)
            return CacheEntry(context, "new")
        return CacheEntry(context, "cache")

    def get_or_load(self, session_id: str) -> SessionContext:
        entry = self.load(session_id)
        if entry is None:
            raise KeyError(f"Session not found: {session_id}")
        return entry.context
