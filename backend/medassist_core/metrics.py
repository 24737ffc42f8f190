from __future__ import annotations

import threading
from collections import Counter
from typing import Any

from medassist_memory.time_utils import utc_now


class MetricsCollector:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total_conversations = 0
        self.total_messages = 0
        self.emergency_count = 0
        self.intent_distribution: Counter[str] = Counter()
        self.symptom_frequency: Counter[str] = Counter()
        self.peak_hours: Counter[int] = Counter()

    def record_conversation(self) -> None:
        with self._lock:
            self.total_conversations += 1

    def record_message(self, intent: str) -> None:
        with self._lock:
            self.total_messages += 1
            self.intent_distribution[intent] += 1
            self.peak_hours[utc_now().hour] += 1

    def record_symptoms(self, symptoms: list[str] | tuple[str, ...]) -> None:
        with self._lock:
            self.symptom_frequency.update(symptoms)

    def record_emergency(self) -> None:
        with self._lock:
            self.emergency_count += 1

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "totalConversations": self.total_conversations,
                "totalMessages": self.total_messages,
                "emergencyCount": self.emergency_count,
                "intentDistribution": dict(self.intent_distribution),
                "symptomFrequency": dict(self.symptom_frequency),
                "peakHours": {str(hour): count for hour, count in sorted(self.peak_hours.items())},
            }
