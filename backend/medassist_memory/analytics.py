from __future__ import annotations

import json
import logging
import threading
from collections import Counter
from datetime import timedelta
from typing import Any, Protocol

from .database import SQLiteSessionDB
from .time_utils import to_iso, utc_now

logger = logging.getLogger(__name__)


class AnalyticsSink(Protocol):
    def record(self, event_type: str, payload: dict[str, Any], session_id: str | None) -> None: ...

    def event_counts(self, lookback_days: int = 30) -> dict[str, int]: ...


class SQLiteAnalyticsSink:
    def __init__(self, db: SQLiteSessionDB) -> None:
        self._db = db

    def record(self, event_type: str, payload: dict[str, Any], session_id: str | None) -> None:
        try:
            with self._db.connection() as conn:
                conn.execute(
                    """
                    INSERT INTO analytics_events (event_type, event_json, session_id, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (event_type, json.dumps(payload, sort_keys=True, default=str), session_id, to_iso(utc_now())),
                )
        except Exception as exc:
            logger.warning("analytics record failed (%s): %s", event_type, exc)

    def event_counts(self, lookback_days: int = 30) -> dict[str, int]:
        since = to_iso(utc_now() - timedelta(days=max(1, lookback_days)))
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT event_type, COUNT(*) AS n
                FROM analytics_events
                WHERE created_at >= ?
                GROUP BY event_type
                ORDER BY event_type
                """,
                (since,),
            ).fetchall()
        return {row["event_type"]: int(row["n"]) for row in rows}


class InMemoryAnalyticsSink:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.events: list[dict[str, Any]] = []

    def record(self, event_type: str, payload: dict[str, Any], session_id: str | None) -> None:
        with self._lock:
            self.events.append(
                {
                    "event_type": event_type,
                    "payload": dict(payload),
                    "session_id": session_id,
                    "created_at": to_iso(utc_now()),
                }
            )

    def event_counts(self, lookback_days: int = 30) -> dict[str, int]:
        with self._lock:
            return dict(sorted(Counter(event["event_type"] for event in self.events).items()))
