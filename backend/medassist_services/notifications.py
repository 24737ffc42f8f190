from __future__ import annotations

import itertools
import logging
import threading
from collections import deque
from typing import Any, Callable, Protocol

from medassist_memory.time_utils import to_iso, utc_now

logger = logging.getLogger(__name__)


Listener = Callable[[dict[str, Any]], None]


class NotificationChannel(Protocol):
    def emit(self, event_name: str, payload: dict[str, Any]) -> None: ...


class NotificationHub:
    def __init__(self, *, backlog: int = 200) -> None:
        self._lock = threading.Lock()
        self._events: deque[dict[str, Any]] = deque(maxlen=max(1, backlog))
        self._sequence = itertools.count(1)
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        with self._lock:
            event = {
                "id": next(self._sequence),
                "event": event_name,
                "data": dict(payload),
                "emitted_at": to_iso(utc_now()),
            }
            self._events.append(event)
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as exc:
                logger.warning("notification listener failed for %s: %s", event_name, exc)

    def events_after(self, after: int = 0, *, event_name: str | None = None) -> list[dict[str, Any]]:
        with self._lock:
            return [
                dict(event)
                for event in self._events
                if event["id"] > after and (event_name is None or event["event"] == event_name)
            ]
