from __future__ import annotations

import re
from typing import Sequence

from .knowledge import EMERGENCY_KEYWORDS, TRIAGE_ACTIONS, URGENT_KEYWORDS
from .metrics import MetricsCollector
from .models import PRIORITY_BY_LEVEL, URGENCY_BY_LEVEL, PatternRule, TriageResult


TRIAGE_KEYWORD_RULES: tuple[PatternRule, ...] = (
    *(PatternRule("emergency", re.escape(keyword)) for keyword in EMERGENCY_KEYWORDS),
    *(PatternRule("urgent", re.escape(keyword)) for keyword in URGENT_KEYWORDS),
)

URGENT_SEVERITIES = {"severe", "intense", "extreme"}
MODERATE_SEVERITIES = {"moderate"}

_DURATION_RE = re.compile(r"(\d+)\s*(day|days|week|weeks|month|months)", re.IGNORECASE)


def duration_in_days(duration: str | None) -> int | None:
    if not duration:
        return None
    match = _DURATION_RE.search(duration)
    if not match:
        return None
    count = int(match.group(1))
    unit = match.group(2).lower()
    if unit.startswith("month"):
        return count * 30
    if unit.startswith("week"):
        return count * 7
    return count


def _is_prolonged(duration: str | None) -> bool:
    if not duration:
        return False
    match = _DURATION_RE.search(duration)
    if not match:
        return False
    if match.group(2).lower().startswith("month"):
        return True
    days = duration_in_days(duration)
    return days is not None and days >= 14


class TriageEngine:
    def __init__(
        self,
        rules: Sequence[PatternRule] = TRIAGE_KEYWORD_RULES,
        *,
        metrics: MetricsCollector | None = None,
        actions: dict[str, str] | None = None,
    ) -> None:
        self.rules = tuple(rules)
        self.metrics = metrics
        self.actions = dict(actions or TRIAGE_ACTIONS)
        self._compiled = [(rule.label, re.compile(rule.pattern, re.IGNORECASE)) for rule in self.rules]

    def result_for(self, level: str) -> TriageResult:
        return TriageResult(
            level=level,
            priority=PRIORITY_BY_LEVEL[level],
            action=self.actions[level],
            urgency=URGENCY_BY_LEVEL[level],
        )

    def escalate_to_emergency(self) -> TriageResult:
        if self.metrics is not None:
            self.metrics.record_emergency()
        return self.result_for("emergency")

    def assess(self, text: str, *, duration: str | None = None, severity: str | None = None) -> TriageResult:
        lowered = (text or "").lower()
        for keyword_level in ("emergency", "urgent"):
            if any(pattern.search(lowered) for level, pattern in self._compiled if level == keyword_level):
                if keyword_level == "emergency":
                    return self.escalate_to_emergency()
                return self.result_for(keyword_level)

        normalized_severity = (severity or "").strip().lower()
        if normalized_severity in URGENT_SEVERITIES:
            return self.result_for("urgent")
        if normalized_severity in MODERATE_SEVERITIES:
            return self.result_for("moderate")

        if _is_prolonged(duration):
            return self.result_for("moderate")

        return self.result_for("routine")
