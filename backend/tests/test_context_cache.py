from __future__ import annotations

from fakes import BrokenStore
from medassist_core import ContextCache


def test_cold_miss_creates_and_registers_session(store):
    cache = ContextCache(store)

    entry = cache.load("s-new")

    assert entry.is_new
    assert entry.context.session_id == "s-new"
    assert entry.context.turns == []
    assert store.get("s-new")["metadata"]["appointment"]["asked_type"] is False
    assert "s-new" in cache


def test_warm_hit_returns_same_context(store):
    cache = ContextCache(store)
    first = cache.load("s-1")

    second = cache.load("s-1")

    assert second.source == "cache"
    assert second.context is first.context


def test_hydrates_from_store_record(store):
    store.create(
        "s-stored",
        {"medications": ["aspirin"], "symptoms": ["headache"], "conditions": []},
        {
            "current_topic": "symptom",
            "follow_ups": {"headache": {"asked_duration": True, "asked_severity": False}},
            "appointment": {"asked_type": True, "type": None},
        },
    )
    store.append_message("s-stored", "user", "I have a headache", {"intent": "symptom", "sentiment": "neutral"})
    store.append_message("s-stored", "assistant", "How long?", {"intent": "symptom"})

    entry = ContextCache(store).load("s-stored")

    context = entry.context
    assert entry.source == "store"
    assert [turn.role for turn in context.turns] == ["user", "assistant"]
    assert context.turns[0].intent == "symptom"
    assert context.current_topic == "symptom"
    assert context.profile.medications == {"aspirin"}
    assert context.follow_up_flags("headache").asked_duration is True
    assert context.follow_up_flags("headache").asked_severity is False
    assert context.appointment.stage == "asked_type"


def test_load_without_create_returns_none_for_unknown(store):
    cache = ContextCache(store)

    assert cache.load("missing", create=False) is None
    assert store.get("missing") is None
    assert len(cache) == 0


def test_store_failure_falls_back_to_fresh_context():
    cache = ContextCache(BrokenStore())

    entry = cache.load("s-offline")

    assert entry.is_new
    assert entry.context.session_id == "s-offline"
    assert cache.peek("s-offline") is entry.context


def test_evict_then_reload_hydrates_again(store):
    cache = ContextCache(store)
    cache.load("s-1")

    assert cache.evict("s-1") is True
    assert cache.evict("s-1") is False
    assert cache.load("s-1").source == "store"


def test_get_or_load_returns_context(store):
    cache = ContextCache(store)

    context = cache.get_or_load("s-2")

    assert cache.peek("s-2") is context
