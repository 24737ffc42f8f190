from .analytics import AnalyticsSink, InMemoryAnalyticsSink, SQLiteAnalyticsSink
from .database import SQLiteSessionDB
from .locks import SessionLocks
from .session_store import InMemorySessionStore, SessionStore, SessionStoreError, SQLiteSessionStore

__all__ = [
    "AnalyticsSink",
    "InMemoryAnalyticsSink",
    "InMemorySessionStore",
    "SQLiteAnalyticsSink",
    "SQLiteSessionDB",
    "SQLiteSessionStore",
    "SessionLocks",
    "SessionStore",
    "SessionStoreError",
]
