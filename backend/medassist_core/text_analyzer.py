from __future__ import annotations

import re

from .knowledge import (
    BODY_PART_VOCABULARY,
    COMMON_SYMPTOMS,
    MEDICATION_VOCABULARY,
    NEGATIVE_LEXICON,
    POSITIVE_LEXICON,
    SEVERITY_WORDS,
)
from .models import Entities, SymptomInfo


_NUMBER_RE = re.compile(r"\b\d+\b")
_TIME_SPAN_RE = re.compile(r"\b(\d+)\s*(day|days|hour|hours|week|weeks|month|months)\b", re.IGNORECASE)
_SEVERITY_RE = re.compile(r"\b(" + "|".join(SEVERITY_WORDS) + r")\b", re.IGNORECASE)


def sentiment_score(text: str) -> int:
    lowered = text.lower()
    score = sum(1 for word in POSITIVE_LEXICON if word in lowered)
    score -= sum(1 for word in NEGATIVE_LEXICON if word in lowered)
    return score


def analyze_sentiment(text: str) -> str:
    score = sentiment_score(text)
    if score > 0:
        return "positive"
    if score < 0:
        return "negative"
    return "neutral"


def extract_entities(text: str) -> Entities:
    lowered = text.lower()
    return Entities(
        medications=tuple(med for med in MEDICATION_VOCABULARY if med in lowered),
        body_parts=tuple(part for part in BODY_PART_VOCABULARY if part in lowered),
        numbers=tuple(int(token) for token in _NUMBER_RE.findall(text)),
        time_expressions=tuple(match.group(0) for match in _TIME_SPAN_RE.finditer(text)),
    )


def extract_symptom_info(text: str) -> SymptomInfo:
    lowered = text.lower()
    duration_match = _TIME_SPAN_RE.search(text)
    severity_match = _SEVERITY_RE.search(text)
    return SymptomInfo(
        symptoms=tuple(symptom for symptom in COMMON_SYMPTOMS if symptom in lowered),
        duration=f"{duration_match.group(1)} {duration_match.group(2)}" if duration_match else None,
        severity=severity_match.group(1).lower() if severity_match else None,
    )
