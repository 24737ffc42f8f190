from __future__ import annotations

import logging
from typing import Any

from medassist_memory.analytics import AnalyticsSink
from medassist_memory.time_utils import to_iso, utc_now
from medassist_services.notifications import NotificationChannel

from .appointment_flow import AppointmentFlowController, FlowResult
from .composer import CompositionRequest, ComposedReply, ResponseComposer, compose_emergency
from .context_cache import ContextCache
from .intent import IntentClassifier
from .interactions import InteractionChecker, InteractionReport
from .metrics import MetricsCollector
from .models import ChatReply, Entities, SessionContext, TriageResult, Turn
from .templates import APOLOGY_RESPONSE, SESSION_REQUIRED_RESPONSE
from .text_analyzer import analyze_sentiment, extract_entities, extract_symptom_info
from .triage import TriageEngine

logger = logging.getLogger(__name__)

EMERGENCY_ALERT_EVENT = "emergency_alert"
TRIAGED_INTENTS = {"symptom", "triage"}
INTERACTION_INTENTS = {"symptom", "medication"}


def _cannot_proceed(session_id: str) -> ChatReply:
    return ChatReply(session_id=session_id or "", response=SESSION_REQUIRED_RESPONSE, cannot_proceed=True)


class DialogueEngine:
    """Runs one conversational turn end to end for a session.

    Callers serialize turns per session id; distinct sessions may run concurrently.
    Store, notifier and analytics failures are logged and never abort a turn.
    """

    def __init__(
        self,
        *,
        cache: ContextCache,
        composer: ResponseComposer | None = None,
        classifier: IntentClassifier | None = None,
        triage: TriageEngine | None = None,
        checker: InteractionChecker | None = None,
        flow: AppointmentFlowController | None = None,
        metrics: MetricsCollector | None = None,
        notifier: NotificationChannel | None = None,
        analytics: AnalyticsSink | None = None,
    ) -> None:
        self.cache = cache
        self.metrics = metrics or MetricsCollector()
        self.composer = composer or ResponseComposer()
        self.classifier = classifier or IntentClassifier()
        self.triage = triage or TriageEngine(metrics=self.metrics)
        self.checker = checker or InteractionChecker()
        self.flow = flow or AppointmentFlowController()
        self.notifier = notifier
        self.analytics = analytics

    def handle_turn(self, message: str, session_id: str) -> ChatReply:
        text = (message or "").strip()
        if not (session_id or "").strip():
            logger.warning("turn rejected: no session id")
            return _cannot_proceed(session_id)
        try:
            return self._run_turn(text, session_id)
        except Exception:
            logger.exception("turn failed for session %s", session_id)
            return ChatReply(session_id=session_id, response=APOLOGY_RESPONSE, failed=True)

    def _run_turn(self, text: str, session_id: str) -> ChatReply:
        entry = self.cache.load(session_id)
        if entry is None:
            raise KeyError(f"Session not found: {session_id}")
        context = entry.context
        if entry.is_new:
            self.metrics.record_conversation()
            self._record("session_created", {}, session_id)

        sentiment = analyze_sentiment(text)
        entities = extract_entities(text)
        symptom_info = extract_symptom_info(text)
        intent = self.classifier.classify(text)
        previous_topic = context.current_topic

        context.profile.medications.update(entities.medications)
        context.profile.symptoms.update(symptom_info.symptoms)
        user_turn = Turn(role="user", text=text, intent=intent, entities=entities, sentiment=sentiment)
        context.append(user_turn)
        self._save_turn(context, user_turn)
        self.metrics.record_message(intent)
        self._record("user_message", {"intent": intent, "sentiment": sentiment}, session_id)
        context.current_topic = intent

        if intent == self.classifier.emergency_label:
            triage = self.triage.assess(text, duration=symptom_info.duration, severity=symptom_info.severity)
            if triage.level != "emergency":
                triage = self.triage.escalate_to_emergency()
            return self._emergency_turn(context, text, entities, sentiment, triage)

        flow_result = self._consult_flow(context, text)
        if flow_result is not None:
            if flow_result.status == "cannot_proceed":
                return _cannot_proceed(context.session_id)
            composed = ComposedReply(response=flow_result.response, quick_actions=flow_result.quick_actions)
            return self._finish(context, "appointment", composed, entities, sentiment)

        triage: TriageResult | None = None
        if intent in TRIAGED_INTENTS:
            triage = self.triage.assess(text, duration=symptom_info.duration, severity=symptom_info.severity)
        if symptom_info.symptoms:
            self.metrics.record_symptoms(symptom_info.symptoms)

        interactions = InteractionReport()
        if intent in INTERACTION_INTENTS and len(context.profile.medications) > 1:
            interactions = self.checker.check(sorted(context.profile.medications))

        composed = self.composer.compose(
            CompositionRequest(
                intent=intent,
                message=text,
                context=context,
                entities=entities,
                sentiment=sentiment,
                symptom_info=symptom_info,
                triage=triage,
                interactions=interactions,
                previous_topic=previous_topic,
            )
        )
        return self._finish(context, intent, composed, entities, sentiment)

    def _consult_flow(self, context: SessionContext, text: str) -> FlowResult | None:
        state = context.appointment
        if not (state.in_flow or self.flow.is_trigger(text)):
            return None
        result = self.flow.advance(context.session_id, state, text)
        if result.status == "cannot_proceed":
            logger.warning("appointment flow cannot proceed without a session id")
            return result
        if result.status == "completed":
            self._record("appointment_completed", result.summary or {}, context.session_id)
        return result if result.handled else None

    def _emergency_turn(
        self,
        context: SessionContext,
        text: str,
        entities: Entities,
        sentiment: str,
        triage: TriageResult,
    ) -> ChatReply:
        logger.info("emergency detected for session %s", context.session_id)
        self._record("emergency_detected", {"message": text}, context.session_id)
        composed = compose_emergency()
        composed.triage = triage
        reply = self._finish(context, self.classifier.emergency_label, composed, entities, sentiment)
        self._notify(
            EMERGENCY_ALERT_EVENT,
            {"session_id": context.session_id, "message": text, "timestamp": to_iso(utc_now())},
        )
        return reply

    def _finish(
        self,
        context: SessionContext,
        intent: str,
        composed: ComposedReply,
        entities: Entities,
        sentiment: str,
    ) -> ChatReply:
        assistant_turn = Turn(
            role="assistant",
            text=composed.response,
            intent=intent,
            triage_level=composed.triage.level if composed.triage else None,
        )
        context.append(assistant_turn)
        self._save_turn(context, assistant_turn)
        self._save_context(context)
        return ChatReply(
            session_id=context.session_id,
            response=composed.response,
            quick_actions=list(composed.quick_actions),
            intent=intent,
            triage=composed.triage,
            entities=entities,
            sentiment=sentiment,
            ai_enhanced=composed.ai_enhanced,
            conversation_length=len(context.turns),
        )

    def _save_turn(self, context: SessionContext, turn: Turn) -> None:
        annotations = {
            "intent": turn.intent,
            "entities": turn.entities.as_dict() if turn.entities else None,
            "sentiment": turn.sentiment,
            "triage_level": turn.triage_level,
        }
        try:
            self.cache.store.append_message(context.session_id, turn.role, turn.text, annotations)
        except Exception as exc:
            logger.warning("message persist failed for %s: %s", context.session_id, exc)

    def _save_context(self, context: SessionContext) -> None:
        try:
            self.cache.store.update(context.session_id, context.profile.as_dict(), context.to_metadata())
        except Exception as exc:
            logger.warning("session persist failed for %s: %s", context.session_id, exc)

    def _record(self, event_type: str, payload: dict[str, Any], session_id: str | None) -> None:
        if self.analytics is None:
            return
        try:
            self.analytics.record(event_type, payload, session_id)
        except Exception as exc:
            logger.warning("analytics record failed (%s): %s", event_type, exc)

    def _notify(self, event_name: str, payload: dict[str, Any]) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.emit(event_name, payload)
        except Exception as exc:
            logger.warning("notification emit failed (%s): %s", event_name, exc)

    def history(self, session_id: str) -> list[dict[str, Any]] | None:
        entry = self.cache.load(session_id, create=False)
        if entry is None:
            return None
        return [turn.as_dict() for turn in entry.context.turns]

    def clear_session(self, session_id: str) -> bool:
        return self.cache.evict(session_id)

    def profile(self, session_id: str) -> dict[str, Any] | None:
        entry = self.cache.load(session_id, create=False)
        if entry is None:
            return None
        context = entry.context
        return {
            "sessionId": context.session_id,
            "profile": context.profile.as_dict(),
            "stats": {
                "totalMessages": len(context.turns),
                "userMessages": sum(1 for turn in context.turns if turn.role == "user"),
                "topics": context.topics(),
                "currentTopic": context.current_topic,
                "createdAt": to_iso(context.created_at),
            },
        }

    def export(self, session_id: str) -> dict[str, Any] | None:
        entry = self.cache.load(session_id, create=False)
        if entry is None:
            return None
        context = entry.context
        return {
            "sessionId": context.session_id,
            "createdAt": to_iso(context.created_at),
            "exportedAt": to_iso(utc_now()),
            "history": [turn.as_dict() for turn in context.turns],
            "profile": context.profile.as_dict(),
            "summary": {
                "totalMessages": len(context.turns),
                "topics": context.topics(),
                "symptoms": sorted(context.profile.symptoms),
                "medications": sorted(context.profile.medications),
            },
        }

    def session_summaries(self) -> list[dict[str, Any]]:
        summaries = []
        for context in self.cache.contexts():
            last = context.turns[-1] if context.turns else None
            summaries.append(
                {
                    "sessionId": context.session_id,
                    "messageCount": len(context.turns),
                    "currentTopic": context.current_topic,
                    "createdAt": to_iso(context.created_at),
                    "lastActivity": to_iso(last.timestamp) if last else None,
                    "inAppointmentFlow": context.appointment.in_flow,
                }
            )
        return summaries

    def analytics_snapshot(self) -> dict[str, Any]:
        snapshot = self.metrics.snapshot()
        contexts = self.cache.contexts()
        total_turns = sum(len(context.turns) for context in contexts)
        snapshot["averageSessionLength"] = round(total_turns / len(contexts), 2) if contexts else 0
        snapshot["activeSessions"] = len(contexts)
        snapshot["aiAvailable"] = self.composer.augmentation_available()
        try:
            snapshot["store"] = self.cache.store.stats()
        except Exception as exc:
            logger.warning("session store stats failed: %s", exc)
            snapshot["store"] = None
        if self.analytics is not None:
            try:
                snapshot["events"] = self.analytics.event_counts()
            except Exception as exc:
                logger.warning("analytics event counts failed: %s", exc)
                snapshot["events"] = None
        return snapshot
