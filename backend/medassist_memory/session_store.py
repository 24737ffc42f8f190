from __future__ import annotations

import copy
import json
import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Protocol

from .database import SQLiteSessionDB
from .time_utils import to_iso, utc_now


class SessionStoreError(Exception):
    pass


class SessionStore(Protocol):
    def get(self, session_id: str) -> dict[str, Any] | None: ...

    def create(self, session_id: str, profile: dict[str, Any], metadata: dict[str, Any]) -> None: ...

    def update(self, session_id: str, profile: dict[str, Any], metadata: dict[str, Any]) -> None: ...

    def append_message(
        self,
        session_id: str,
        role: str,
        text: str,
        annotations: dict[str, Any] | None = None,
    ) -> None: ...

    def search_messages(self, query: str, limit: int = 100) -> list[dict[str, Any]]: ...

    def stats(self) -> dict[str, int]: ...


def _json_dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def _message_row(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "session_id": row["session_id"],
        "role": row["role"],
        "text": row["message"],
        "intent": row["intent"],
        "entities": json.loads(row["entities_json"]) if row["entities_json"] else None,
        "sentiment": row["sentiment"],
        "triage_level": row["triage_level"],
        "created_at": row["created_at"],
    }


class SQLiteSessionStore:
    def __init__(self, db: SQLiteSessionDB) -> None:
        self._db = db

    @contextmanager
    def _guarded(self, operation: str) -> Iterator[sqlite3.Connection]:
        try:
            with self._db.connection() as conn:
                yield conn
        except sqlite3.Error as exc:
            raise SessionStoreError(f"{operation} failed: {exc}") from exc

    def get(self, session_id: str) -> dict[str, Any] | None:
        with self._guarded("get") as conn:
            row = conn.execute(
                """
                SELECT session_id, profile_json, metadata_json, created_at, updated_at
                FROM sessions
                WHERE session_id = ?
                """,
                (session_id,),
            ).fetchone()
            if not row:
                return None
            messages = [
                _message_row(message)
                for message in conn.execute(
                    """
                    SELECT session_id, role, message, intent, entities_json, sentiment, triage_level, created_at
                    FROM messages
                    WHERE session_id = ?
                    ORDER BY id ASC
                    """,
                    (session_id,),
                ).fetchall()
            ]
        return {
            "session_id": row["session_id"],
            "profile": json.loads(row["profile_json"]),
            "metadata": json.loads(row["metadata_json"]),
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
            "messages": messages,
        }

    def create(self, session_id: str, profile: dict[str, Any], metadata: dict[str, Any]) -> None:
        now = to_iso(utc_now())
        with self._guarded("create") as conn:
            conn.execute(
                """
                INSERT INTO sessions (session_id, profile_json, metadata_json, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (session_id, _json_dumps(profile), _json_dumps(metadata), now, now),
            )

    def update(self, session_id: str, profile: dict[str, Any], metadata: dict[str, Any]) -> None:
        now = to_iso(utc_now())
        with self._guarded("update") as conn:
            conn.execute(
                """
                INSERT INTO sessions (session_id, profile_json, metadata_json, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(session_id) DO UPDATE SET
                  profile_json = excluded.profile_json,
                  metadata_json = excluded.metadata_json,
                  updated_at = excluded.updated_at
                """,
                (session_id, _json_dumps(profile), _json_dumps(metadata), now, now),
            )

    def append_message(
        self,
        session_id: str,
        role: str,
        text: str,
        annotations: dict[str, Any] | None = None,
    ) -> None:
        annotations = annotations or {}
        entities = annotations.get("entities")
        with self._guarded("append_message") as conn:
            conn.execute(
                """
                INSERT INTO messages (
                  session_id, role, message, intent, entities_json, sentiment, triage_level, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session_id,
                    role,
                    text,
                    annotations.get("intent"),
                    _json_dumps(entities) if entities is not None else None,
                    annotations.get("sentiment"),
                    annotations.get("triage_level"),
                    annotations.get("created_at") or to_iso(utc_now()),
                ),
            )

    def search_messages(self, query: str, limit: int = 100) -> list[dict[str, Any]]:
        pattern = f"%{query.strip().lower()}%"
        with self._guarded("search_messages") as conn:
            rows = conn.execute(
                """
                SELECT session_id, role, message, intent, entities_json, sentiment, triage_level, created_at
                FROM messages
                WHERE lower(message) LIKE ? OR lower(coalesce(intent, '')) LIKE ?
                ORDER BY id DESC
                LIMIT ?
                """,
                (pattern, pattern, max(1, limit)),
            ).fetchall()
        return [_message_row(row) for row in rows]

    def stats(self) -> dict[str, int]:
        with self._guarded("stats") as conn:
            total_sessions = conn.execute("SELECT COUNT(*) AS n FROM sessions").fetchone()["n"]
            total_messages = conn.execute("SELECT COUNT(*) AS n FROM messages").fetchone()["n"]
        return {"total_sessions": int(total_sessions), "total_messages": int(total_messages)}


class InMemorySessionStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, dict[str, Any]] = {}

    def get(self, session_id: str) -> dict[str, Any] | None:
        with self._lock:
            record = self._sessions.get(session_id)
            return copy.deepcopy(record) if record else None

    def create(self, session_id: str, profile: dict[str, Any], metadata: dict[str, Any]) -> None:
        now = to_iso(utc_now())
        with self._lock:
            if session_id in self._sessions:
                raise SessionStoreError(f"create failed: session {session_id} already exists")
            self._sessions[session_id] = {
                "session_id": session_id,
                "profile": copy.deepcopy(profile),
                "metadata": copy.deepcopy(metadata),
                "created_at": now,
                "updated_at": now,
                "messages": [],
            }

    def update(self, session_id: str, profile: dict[str, Any], metadata: dict[str, Any]) -> None:
        now = to_iso(utc_now())
        with self._lock:
            record = self._sessions.setdefault(
                session_id,
                {"session_id": session_id, "created_at": now, "messages": []},
            )
            record["profile"] = copy.deepcopy(profile)
            record["metadata"] = copy.deepcopy(metadata)
            record["updated_at"] = now

    def append_message(
        self,
        session_id: str,
        role: str,
        text: str,
        annotations: dict[str, Any] | None = None,
    ) -> None:
        annotations = annotations or {}
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                raise SessionStoreError(f"append_message failed: unknown session {session_id}")
            record["messages"].append(
                {
                    "session_id": session_id,
                    "role": role,
                    "text": text,
                    "intent": annotations.get("intent"),
                    "entities": copy.deepcopy(annotations.get("entities")),
                    "sentiment": annotations.get("sentiment"),
                    "triage_level": annotations.get("triage_level"),
                    "created_at": annotations.get("created_at") or to_iso(utc_now()),
                }
            )

    def search_messages(self, query: str, limit: int = 100) -> list[dict[str, Any]]:
        needle = query.strip().lower()
        with self._lock:
            matches = [
                dict(message)
                for record in self._sessions.values()
                for message in record["messages"]
                if needle in message["text"].lower() or needle in (message.get("intent") or "").lower()
            ]
        matches.sort(key=lambda item: item["created_at"], reverse=True)
        return matches[: max(1, limit)]

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "total_sessions": len(self._sessions),
                "total_messages": sum(len(record["messages"]) for record in self._sessions.values()),
            }
