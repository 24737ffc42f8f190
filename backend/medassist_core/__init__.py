from .appointment_flow import AppointmentFlowController, FlowResult
from .composer import ComposedReply, CompositionRequest, ResponseComposer, compose_emergency
from .context_cache import CacheEntry, ContextCache
from .engine import DialogueEngine
from .intent import INTENT_RULES, INTENT_RULES_VERSION, IntentClassifier
from .interactions import Interaction, InteractionChecker, InteractionReport
from .metrics import MetricsCollector
from .models import (
    AppointmentState,
    ChatReply,
    Entities,
    PatternRule,
    SessionContext,
    SymptomInfo,
    TriageResult,
    Turn,
    UserProfile,
)
from .templates import fixed_selector, random_selector
from .text_analyzer import analyze_sentiment, extract_entities, extract_symptom_info
from .triage import TRIAGE_KEYWORD_RULES, TriageEngine

__all__ = [
    "INTENT_RULES",
    "INTENT_RULES_VERSION",
    "TRIAGE_KEYWORD_RULES",
    "AppointmentFlowController",
    "AppointmentState",
    "CacheEntry",
    "ChatReply",
    "ComposedReply",
    "CompositionRequest",
    "ContextCache",
    "DialogueEngine",
    "Entities",
    "FlowResult",
    "Interaction",
    "InteractionChecker",
    "InteractionReport",
    "IntentClassifier",
    "MetricsCollector",
    "PatternRule",
    "ResponseComposer",
    "SessionContext",
    "SymptomInfo",
    "TriageEngine",
    "TriageResult",
    "Turn",
    "UserProfile",
    "analyze_sentiment",
    "compose_emergency",
    "extract_entities",
    "extract_symptom_info",
    "fixed_selector",
    "random_selector",
]
