from __future__ import annotations

import re
from typing import Sequence

from .models import PatternRule


INTENT_RULES_VERSION = "2024.1"

INTENT_RULES: tuple[PatternRule, ...] = (
    PatternRule(
        "emergency",
        r"emergency|chest pain|can't breathe|difficulty breathing|severe pain|heart attack|stroke|unconscious"
        r"|bleeding|poison|overdose|suicide|self harm|crushing|pressure|sudden",
    ),
    PatternRule("greeting", r"hi|hello|hey|greetings|good morning|good afternoon|good evening|what's up"),
    PatternRule("goodbye", r"bye|goodbye|see you|farewell|exit|quit|thanks|thank you|appreciate"),
    PatternRule("help", r"help|what can you do|how can you help|assist|capabilities|features"),
    PatternRule(
        "symptom",
        r"symptom|pain|ache|hurt|fever|nausea|dizzy|headache|stomach|feeling|unwell|sick|illness|disease"
        r"|condition|tired|fatigue|weak|sore",
    ),
    PatternRule(
        "appointment",
        r"appointment|schedule|book|visit|see doctor|see a doctor|consultation|checkup|exam|available|when"
        r"|book now|check availability|find doctor",
    ),
    PatternRule(
        "medication",
        r"medication|medicine|drug|pill|prescription|dosage|side effect|interaction|pharmacy|take|taking",
    ),
    PatternRule(
        "wellness",
        r"wellness|healthy|diet|exercise|fitness|nutrition|sleep|stress|mental health|prevention|preventive|weight",
    ),
    PatternRule(
        "specialty",
        r"cardiologist|dermatologist|neurologist|orthopedic|pediatrician|psychiatrist|specialist|specialty",
    ),
    PatternRule("triage", r"urgent|emergency|severe|mild|moderate|how bad|how serious|priority"),
)

FALLBACK_INTENT = "general"
EMERGENCY_INTENT = "emergency"


class IntentClassifier:
    def __init__(
        self,
        rules: Sequence[PatternRule] = INTENT_RULES,
        *,
        fallback: str = FALLBACK_INTENT,
        emergency_label: str = EMERGENCY_INTENT,
    ) -> None:
        self.rules = tuple(rules)
        self.fallback = fallback
        self.emergency_label = emergency_label
        self._compiled = [(rule.label, re.compile(rf"\b(?:{rule.pattern})\b")) for rule in self.rules]
        self._emergency = [pattern for label, pattern in self._compiled if label == emergency_label]

    @property
    def labels(self) -> list[str]:
        return [rule.label for rule in self.rules] + [self.fallback]

    def is_emergency(self, text: str) -> bool:
        cleaned = (text or "").lower().strip()
        return any(pattern.search(cleaned) for pattern in self._emergency)

    def matches(self, text: str) -> list[str]:
        cleaned = (text or "").lower().strip()
        return [label for label, pattern in self._compiled if pattern.search(cleaned)]

    def classify(self, text: str) -> str:
        if self.is_emergency(text):
            return self.emergency_label
        cleaned = (text or "").lower().strip()
        for label, pattern in self._compiled:
            if label == self.emergency_label:
                continue
            if pattern.search(cleaned):
                return label
        return self.fallback
