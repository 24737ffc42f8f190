from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from medassist_services.augmentation import GenerativeAugmenter

from .interactions import InteractionReport
from .knowledge import COMMON_SYMPTOMS, SPECIALTIES, WELLNESS_TIPS, domain_summary
from .models import Entities, SessionContext, SymptomInfo, TriageResult
from .templates import (
    DISCLAIMER,
    EMERGENCY_RESPONSE,
    MEDICATION_DISCLAIMER,
    RESPONSE_TEMPLATES,
    TemplateSelector,
    pick,
    quick_actions_for,
    random_selector,
)

logger = logging.getLogger(__name__)


@dataclass
class CompositionRequest:
    intent: str
    message: str
    context: SessionContext
    entities: Entities
    sentiment: str
    symptom_info: SymptomInfo = field(default_factory=SymptomInfo)
    triage: TriageResult | None = None
    interactions: InteractionReport = field(default_factory=InteractionReport)
    previous_topic: str | None = None


@dataclass
class ComposedReply:
    response: str
    quick_actions: list[str]
    triage: TriageResult | None = None
    ai_enhanced: bool = False


def compose_emergency() -> ComposedReply:
    return ComposedReply(response=EMERGENCY_RESPONSE, quick_actions=quick_actions_for("emergency"))


def _urgency_banner(triage: TriageResult) -> str:
    return f"🚨 **URGENCY: {triage.urgency}**"


def _numbered(items: list[str]) -> str:
    return "\n".join(f"{index}. {item}" for index, item in enumerate(items, start=1))


def _specialty_stem(name: str) -> str:
    if "ology" in name:
        return name.replace("ology", "")
    if name.endswith("s"):
        return name[:-1]
    if name.endswith("y"):
        return name[:-1]
    return name


def _history_for_generation(context: SessionContext) -> list[dict[str, str]]:
    prior_turns = context.turns[:-1] if context.turns else []
    return [
        {"role": "user" if turn.role == "user" else "assistant", "content": turn.text}
        for turn in prior_turns[-15:]
    ]


class ResponseComposer:
    def __init__(
        self,
        augmenter: GenerativeAugmenter | None = None,
        *,
        selector: TemplateSelector | None = None,
    ) -> None:
        self.augmenter = augmenter
        self.selector = selector or random_selector()

    def augmentation_available(self) -> bool:
        if self.augmenter is None:
            return False
        try:
            return bool(self.augmenter.available())
        except Exception as exc:
            logger.warning("generative augmentation availability probe failed: %s", exc)
            return False

    def _domain_context(self, request: CompositionRequest) -> dict[str, Any]:
        profile = request.context.profile
        return {
            "intent": request.intent,
            "current_topic": request.previous_topic or "general",
            "recent_topics": request.context.topics()[-5:],
            "medications": sorted(profile.medications),
            "symptoms": sorted(profile.symptoms),
            "knowledge": domain_summary(),
        }

    def _generate(self, request: CompositionRequest) -> str | None:
        if not self.augmentation_available():
            return None
        try:
            text = self.augmenter.generate(  # type: ignore[union-attr]
                request.message,
                _history_for_generation(request.context),
                self._domain_context(request),
            )
        except Exception as exc:
            logger.warning("generative augmentation unavailable for intent %s: %s", request.intent, exc)
            return None
        if not isinstance(text, str) or not text.strip():
            return None
        return text.strip()

    def compose(self, request: CompositionRequest) -> ComposedReply:
        generated = self._generate(request)
        if request.intent == "symptom":
            return self._symptom(request, generated)
        if request.intent == "medication":
            return self._medication(request, generated)
        if request.intent == "triage" and request.triage is not None:
            return self._triage(request.triage, generated)
        if generated:
            return ComposedReply(
                response=generated,
                quick_actions=quick_actions_for(request.intent),
                ai_enhanced=True,
            )
        return self._fallback(request)

    def _symptom(self, request: CompositionRequest, generated: str | None) -> ComposedReply:
        triage = request.triage
        warnings = request.interactions.warnings
        if generated:
            parts = [generated]
            if triage is not None and triage.elevated:
                parts = [_urgency_banner(triage), generated, f"**Recommended Action:** {triage.action}"]
            if warnings:
                parts.append("\n".join(warnings))
            parts.append(DISCLAIMER)
            return ComposedReply(
                response="\n\n".join(parts),
                quick_actions=quick_actions_for("symptom", urgency=triage.urgency if triage else None),
                triage=triage,
                ai_enhanced=True,
            )

        symptoms = request.symptom_info.symptoms
        if not symptoms:
            response = pick(RESPONSE_TEMPLATES["symptom"], self.selector)
            if triage is not None and triage.elevated:
                response = f"{_urgency_banner(triage)}\n{triage.action}\n\n{response}"
            if warnings:
                response += "\n\n" + "\n".join(warnings)
            return ComposedReply(
                response=response,
                quick_actions=quick_actions_for("symptom_general", urgency=triage.urgency if triage else None),
                triage=triage,
            )

        return self._symptom_assessment(request, symptoms[0])

    def _symptom_assessment(self, request: CompositionRequest, symptom: str) -> ComposedReply:
        triage = request.triage
        info = request.symptom_info
        knowledge = COMMON_SYMPTOMS.get(symptom)
        flags = request.context.follow_up_flags(symptom)

        response = f"I understand you're experiencing {symptom}. "
        if triage is not None and triage.elevated:
            response += f"\n\n{_urgency_banner(triage)}\n{triage.action}\n\n"
        if knowledge:
            response += knowledge["description"] + " "
        if request.sentiment == "negative":
            response += "I understand this is concerning for you. "

        follow_ups: list[str] = []
        if info.duration:
            response += f"You mentioned it's been {info.duration}. "
        elif not flags.asked_duration:
            follow_ups.append("How long have you been experiencing this?")
            flags.asked_duration = True

        if info.severity:
            response += f"You mentioned it's {info.severity}. "
        elif not flags.asked_severity:
            follow_ups.append("On a scale of 1-10, how would you rate the severity?")
            flags.asked_severity = True

        if not flags.asked_other_symptoms:
            follow_ups.append("Are you experiencing any other symptoms?")
            flags.asked_other_symptoms = True

        if follow_ups:
            response += " ".join(follow_ups)
        if knowledge and knowledge.get("recommendations"):
            response += "\n\n**General recommendations:**\n" + _numbered(knowledge["recommendations"])
        if triage is not None:
            response += f"\n\n**Recommended Action:** {triage.action}"
        if request.interactions.warnings:
            response += "\n\n" + "\n".join(request.interactions.warnings)
        response += f"\n\n{DISCLAIMER}"

        return ComposedReply(
            response=response,
            quick_actions=quick_actions_for("symptom", urgency=triage.urgency if triage else None),
            triage=triage,
        )

    def _medication(self, request: CompositionRequest, generated: str | None) -> ComposedReply:
        response = generated or pick(RESPONSE_TEMPLATES["medication"], self.selector)
        warnings = request.interactions.warnings
        if warnings:
            response += "\n\n" + "\n".join(warnings) + f"\n\n{MEDICATION_DISCLAIMER}"
        return ComposedReply(
            response=response,
            quick_actions=quick_actions_for("medication"),
            ai_enhanced=generated is not None,
        )

    def _triage(self, triage: TriageResult, generated: str | None) -> ComposedReply:
        summary = (
            f"Based on what you've described, this looks like a {triage.level} concern "
            f"(priority {triage.priority}, urgency {triage.urgency}).\n\n**Recommended Action:** {triage.action}"
        )
        response = f"{generated}\n\n{summary}" if generated else summary
        if triage.elevated:
            response = f"{_urgency_banner(triage)}\n\n{response}"
        return ComposedReply(
            response=f"{response}\n\n{DISCLAIMER}",
            quick_actions=quick_actions_for("triage", urgency=triage.urgency),
            triage=triage,
            ai_enhanced=generated is not None,
        )

    def _fallback(self, request: CompositionRequest) -> ComposedReply:
        intent = request.intent
        lowered = request.message.lower()

        if intent == "specialty":
            for name, description in SPECIALTIES.items():
                if name in lowered or _specialty_stem(name) in lowered:
                    return ComposedReply(
                        response=(
                            f"A {name} specialist focuses on {description}. Would you like help finding a "
                            f"{name} specialist or scheduling an appointment?"
                        ),
                        quick_actions=quick_actions_for("specialty"),
                    )

        if intent == "wellness":
            for category, tips in WELLNESS_TIPS.items():
                if category in lowered:
                    return ComposedReply(
                        response=(
                            f"Here are some {category} tips:\n\n{_numbered(tips)}\n\n"
                            f"Would you like more information about {category}?"
                        ),
                        quick_actions=quick_actions_for("wellness_category"),
                    )

        if intent == "appointment":
            response = pick(RESPONSE_TEMPLATES["appointment"], self.selector)
            return ComposedReply(
                response=f'{response}\n\nWhen you\'re ready, say "book now" and I\'ll collect your appointment details.',
                quick_actions=quick_actions_for("appointment"),
            )

        if intent in RESPONSE_TEMPLATES and intent != "general":
            return ComposedReply(
                response=pick(RESPONSE_TEMPLATES[intent], self.selector),
                quick_actions=quick_actions_for(intent),
            )

        previous = request.previous_topic
        if len(request.context.turns) > 2 and previous and previous != "general":
            response = (
                f"I understand. Based on our conversation about {previous}, I'd recommend consulting with a "
                "healthcare professional for personalized advice. Is there anything specific you'd like to know "
                "more about?"
            )
        else:
            response = pick(RESPONSE_TEMPLATES["general"], self.selector)
        return ComposedReply(response=response, quick_actions=quick_actions_for("general"))
