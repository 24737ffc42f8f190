from __future__ import annotations

from fakes import BrokenStore, FailingAugmenter, StaticAugmenter
from medassist_core import AppointmentFlowController, ContextCache, FlowResult, fixed_selector
from medassist_core.templates import APOLOGY_RESPONSE, EMERGENCY_RESPONSE, SESSION_REQUIRED_RESPONSE
from medassist_memory import SQLiteSessionDB, SQLiteSessionStore


def test_headache_with_no_prior_context(make_engine):
    engine = make_engine()

    reply = engine.handle_turn("I have a headache", "s-1")

    assert reply.intent == "symptom"
    assert "How long have you been experiencing this?" in reply.response
    assert "Schedule Appointment" in reply.quick_actions
    assert reply.triage.level == "routine"
    assert reply.failed is False


def test_severe_chest_pain_takes_emergency_path(make_engine, notifier, analytics):
    augmenter = StaticAugmenter("should never be used")
    engine = make_engine(augmenter)

    reply = engine.handle_turn("I have severe chest pain", "s-er")

    assert reply.intent == "emergency"
    assert reply.triage.urgency == "CRITICAL"
    assert reply.response == EMERGENCY_RESPONSE
    assert augmenter.calls == []
    assert len(notifier.events) == 1
    event_name, payload = notifier.events[0]
    assert event_name == "emergency_alert"
    assert payload["session_id"] == "s-er"
    assert payload["message"] == "I have severe chest pain"
    assert engine.metrics.emergency_count == 1
    assert "emergency_detected" in analytics.event_counts()


def test_emergency_without_triage_keyword_still_counts_once(make_engine, notifier):
    engine = make_engine()

    reply = engine.handle_turn("I think I took an overdose", "s-od")

    assert reply.triage.level == "emergency"
    assert engine.metrics.emergency_count == 1
    assert len(notifier.events) == 1


def test_failing_hook_never_leaves_user_without_reply(make_engine):
    engine = make_engine(FailingAugmenter())
    messages = {
        "hello": "greeting",
        "I feel sick": "symptom",
        "can I see a doctor": "appointment",
        "is this pill safe": "medication",
        "tips for stress": "wellness",
        "do I need a dermatologist": "specialty",
        "how bad is it": "triage",
        "tell me a story": "general",
        "bye": "goodbye",
    }

    for message, intent in messages.items():
        reply = engine.handle_turn(message, "s-fallback")
        assert reply.intent == intent
        assert reply.response.strip()
        assert reply.ai_enhanced is False
        if intent in {"symptom", "appointment", "medication", "wellness"}:
            assert reply.quick_actions


def test_booking_flow_across_four_turns(make_engine, analytics):
    engine = make_engine()

    engine.handle_turn("book now", "s-book")
    engine.handle_turn("Specialist Visit", "s-book")
    engine.handle_turn("Tomorrow", "s-book")
    final = engine.handle_turn("Symptoms", "s-book")

    context = engine.cache.peek("s-book")
    assert final.intent == "appointment"
    assert "**Appointment Type:** Specialist Visit" in final.response
    assert "**Preferred Date:** Tomorrow" in final.response
    assert final.quick_actions == ["New Appointment", "View Details", "Contact Support"]
    assert context.appointment.stage == "idle"
    assert context.appointment.appointment_type is None
    assert analytics.event_counts()["appointment_completed"] == 1


def test_flow_answer_takes_priority_over_topic_switch(make_engine):
    engine = make_engine()
    engine.handle_turn("book now", "s-flow")

    reply = engine.handle_turn("I have a headache", "s-flow")

    assert reply.intent == "appointment"
    assert engine.cache.peek("s-flow").appointment.appointment_type == "I have a headache"


def test_trigger_while_awaiting_type_falls_through(make_engine):
    engine = make_engine()
    engine.handle_turn("book now", "s-re")

    reply = engine.handle_turn("book now", "s-re")

    state = engine.cache.peek("s-re").appointment
    assert state.stage == "asked_type"
    assert state.appointment_type is None
    assert reply.quick_actions == ["Book Now", "Find Doctor", "Check Availability"]


def test_emergency_preempts_flow_and_keeps_state(make_engine, notifier):
    engine = make_engine()
    engine.handle_turn("book now", "s-mid")
    engine.handle_turn("General Checkup", "s-mid")

    reply = engine.handle_turn("my father is unconscious", "s-mid")

    state = engine.cache.peek("s-mid").appointment
    assert reply.response == EMERGENCY_RESPONSE
    assert state.stage == "asked_date"
    assert state.appointment_type == "General Checkup"
    assert len(notifier.events) == 1

    resumed = engine.handle_turn("Next Week", "s-mid")
    assert resumed.intent == "appointment"
    assert state.stage == "asked_reason"


def test_medications_accumulate_across_turns_for_interaction_check(make_engine):
    engine = make_engine()

    engine.handle_turn("I take aspirin daily", "s-meds")
    reply = engine.handle_turn("I was also prescribed warfarin, is that medication ok?", "s-meds")

    assert reply.intent == "medication"
    assert "⚠️ Potential interaction between aspirin and warfarin" in reply.response
    assert engine.cache.peek("s-meds").profile.medications == {"aspirin", "warfarin"}


def test_generated_text_is_used_when_available(make_engine):
    engine = make_engine(StaticAugmenter("Staying active helps a lot."))

    reply = engine.handle_turn("how much exercise do I need", "s-ai")

    assert reply.ai_enhanced is True
    assert reply.response == "Staying active helps a lot."


def test_store_failures_do_not_abort_turn(make_engine):
    engine = make_engine(cache=ContextCache(BrokenStore()))

    reply = engine.handle_turn("hello", "s-offline")
    follow_up = engine.handle_turn("I have a fever", "s-offline")

    assert reply.failed is False
    assert follow_up.intent == "symptom"
    assert len(engine.cache.peek("s-offline").turns) == 4


def test_composition_error_returns_apology_with_session_id(make_engine, monkeypatch):
    engine = make_engine()

    def _explode(request):
        raise RuntimeError("template store corrupted")

    monkeypatch.setattr(engine.composer, "compose", _explode)
    reply = engine.handle_turn("hello", "s-broken")

    assert reply.failed is True
    assert reply.response == APOLOGY_RESPONSE
    assert reply.session_id == "s-broken"

    monkeypatch.undo()
    assert engine.handle_turn("hello", "s-broken").failed is False


def test_turns_are_persisted_and_hydrated_by_a_new_engine(make_engine, tmp_path):
    store = SQLiteSessionStore(SQLiteSessionDB(str(tmp_path / "engine.sqlite")))
    first = make_engine(cache=ContextCache(store))
    first.handle_turn("I have a headache", "s-durable")
    first.handle_turn("book now", "s-durable")

    second = make_engine(cache=ContextCache(store))
    reply = second.handle_turn("Follow-up", "s-durable")

    context = second.cache.peek("s-durable")
    assert reply.intent == "appointment"
    assert context.appointment.appointment_type == "Follow-up"
    assert context.follow_up_flags("headache").asked_duration is True
    assert [turn.role for turn in context.turns[:2]] == ["user", "assistant"]
    assert len(context.turns) == 6


def test_metrics_and_analytics_track_turns(make_engine, analytics):
    engine = make_engine()
    engine.handle_turn("hello", "s-a")
    engine.handle_turn("I have a cough and feel sick", "s-a")
    engine.handle_turn("hello", "s-b")

    snapshot = engine.analytics_snapshot()

    assert snapshot["totalConversations"] == 2
    assert snapshot["totalMessages"] == 3
    assert snapshot["intentDistribution"] == {"greeting": 2, "symptom": 1}
    assert snapshot["symptomFrequency"] == {"cough": 1}
    assert snapshot["activeSessions"] == 2
    assert snapshot["averageSessionLength"] == 3.0
    assert snapshot["store"] == {"total_sessions": 2, "total_messages": 6}
    counts = analytics.event_counts()
    assert counts["session_created"] == 2
    assert counts["user_message"] == 3


def test_session_views(make_engine):
    engine = make_engine()
    engine.handle_turn("I take ibuprofen for a headache", "s-view")

    exported = engine.export("s-view")
    profile = engine.profile("s-view")

    assert exported["summary"]["medications"] == ["ibuprofen"]
    assert exported["summary"]["symptoms"] == ["headache"]
    assert len(exported["history"]) == 2
    assert profile["stats"]["userMessages"] == 1
    assert engine.history("unknown") is None
    assert engine.session_summaries()[0]["sessionId"] == "s-view"


def test_turn_without_session_id_cannot_proceed(make_engine, store, analytics):
    engine = make_engine()

    for session_id in ("", "   "):
        reply = engine.handle_turn("book now", session_id)

        assert reply.cannot_proceed is True
        assert reply.failed is False
        assert reply.response == SESSION_REQUIRED_RESPONSE
        assert reply.quick_actions == []
        assert session_id not in engine.cache
        assert store.get(session_id) is None

    assert len(engine.cache) == 0
    assert engine.metrics.total_messages == 0
    assert analytics.event_counts() == {}


class _UnresolvedSessionFlow(AppointmentFlowController):
    def advance(self, session_id, state, message):
        return FlowResult(status="cannot_proceed", stage=state.stage)


def test_flow_cannot_proceed_is_reported_to_caller(make_engine):
    engine = make_engine(flow=_UnresolvedSessionFlow(selector=fixed_selector(0)))

    reply = engine.handle_turn("book now", "s-flow")

    assert reply.cannot_proceed is True
    assert reply.response == SESSION_REQUIRED_RESPONSE
    assert engine.cache.peek("s-flow").appointment.stage == "idle"
