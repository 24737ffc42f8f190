from __future__ import annotations

import pytest

from medassist_memory import (
    InMemoryAnalyticsSink,
    InMemorySessionStore,
    SessionStoreError,
    SQLiteAnalyticsSink,
    SQLiteSessionDB,
    SQLiteSessionStore,
)


@pytest.fixture(params=["sqlite", "memory"])
def session_store(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteSessionStore(SQLiteSessionDB(str(tmp_path / "sessions.sqlite")))
    return InMemorySessionStore()


def test_create_get_and_append(session_store):
    session_store.create("s-1", {"medications": []}, {"current_topic": None})
    session_store.append_message(
        "s-1",
        "user",
        "I take aspirin",
        {"intent": "medication", "entities": {"medications": ["aspirin"]}, "sentiment": "neutral"},
    )
    session_store.append_message("s-1", "assistant", "Noted.", {"intent": "medication", "triage_level": None})

    record = session_store.get("s-1")

    assert record["session_id"] == "s-1"
    assert record["profile"] == {"medications": []}
    assert [message["role"] for message in record["messages"]] == ["user", "assistant"]
    assert record["messages"][0]["entities"] == {"medications": ["aspirin"]}
    assert record["messages"][0]["intent"] == "medication"
    assert record["messages"][1]["text"] == "Noted."


def test_get_unknown_session_returns_none(session_store):
    assert session_store.get("nope") is None


def test_duplicate_create_raises_store_error(session_store):
    session_store.create("s-1", {}, {})

    with pytest.raises(SessionStoreError):
        session_store.create("s-1", {}, {})


def test_update_upserts_profile_and_metadata(session_store):
    session_store.update("s-2", {"symptoms": ["fever"]}, {"current_topic": "symptom"})
    session_store.update("s-2", {"symptoms": ["fever", "cough"]}, {"current_topic": "wellness"})

    record = session_store.get("s-2")

    assert record["profile"] == {"symptoms": ["fever", "cough"]}
    assert record["metadata"] == {"current_topic": "wellness"}


def test_search_and_stats(session_store):
    session_store.create("s-1", {}, {})
    session_store.create("s-2", {}, {})
    session_store.append_message("s-1", "user", "My Headache is back", {"intent": "symptom"})
    session_store.append_message("s-2", "user", "hello", {"intent": "greeting"})

    results = session_store.search_messages("headache")

    assert [item["text"] for item in results] == ["My Headache is back"]
    assert session_store.stats() == {"total_sessions": 2, "total_messages": 2}


def test_in_memory_append_to_unknown_session_raises():
    with pytest.raises(SessionStoreError):
        InMemorySessionStore().append_message("ghost", "user", "hi")


def test_analytics_sinks_count_events(tmp_path):
    sqlite_sink = SQLiteAnalyticsSink(SQLiteSessionDB(str(tmp_path / "events.sqlite")))
    memory_sink = InMemoryAnalyticsSink()

    for sink in (sqlite_sink, memory_sink):
        sink.record("user_message", {"intent": "greeting"}, "s-1")
        sink.record("user_message", {"intent": "symptom"}, "s-1")
        sink.record("emergency_detected", {"message": "chest pain"}, "s-1")

        assert sink.event_counts() == {"emergency_detected": 1, "user_message": 2}
