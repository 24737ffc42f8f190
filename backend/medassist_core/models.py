from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from medassist_memory.time_utils import parse_iso, to_iso, utc_now


TRIAGE_LEVELS = ("emergency", "urgent", "moderate", "routine")
URGENCY_BY_LEVEL = {
    "emergency": "CRITICAL",
    "urgent": "HIGH",
    "moderate": "MEDIUM",
    "routine": "LOW",
}
PRIORITY_BY_LEVEL = {"emergency": 1, "urgent": 2, "moderate": 3, "routine": 4}
ELEVATED_URGENCIES = {"CRITICAL", "HIGH"}


@dataclass(frozen=True)
class PatternRule:
    label: str
    pattern: str


@dataclass(frozen=True)
class Entities:
    medications: tuple[str, ...] = ()
    body_parts: tuple[str, ...] = ()
    numbers: tuple[int, ...] = ()
    time_expressions: tuple[str, ...] = ()

    def as_dict(self) -> dict[str, list[Any]]:
        return {
            "medications": list(self.medications),
            "bodyParts": list(self.body_parts),
            "numbers": list(self.numbers),
            "timeExpressions": list(self.time_expressions),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Entities | None:
        if not isinstance(data, dict):
            return None
        return cls(
            medications=tuple(data.get("medications") or ()),
            body_parts=tuple(data.get("bodyParts") or ()),
            numbers=tuple(int(n) for n in data.get("numbers") or ()),
            time_expressions=tuple(data.get("timeExpressions") or ()),
        )


@dataclass(frozen=True)
class SymptomInfo:
    symptoms: tuple[str, ...] = ()
    duration: str | None = None
    severity: str | None = None


@dataclass(frozen=True)
class TriageResult:
    level: str
    priority: int
    action: str
    urgency: str

    @property
    def elevated(self) -> bool:
        return self.urgency in ELEVATED_URGENCIES

    def as_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "priority": self.priority,
            "action": self.action,
            "urgency": self.urgency,
        }


@dataclass(frozen=True)
class Turn:
    role: str
    text: str
    timestamp: datetime = field(default_factory=utc_now)
    intent: str | None = None
    entities: Entities | None = None
    sentiment: str | None = None
    triage_level: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "text": self.text,
            "timestamp": to_iso(self.timestamp),
            "intent": self.intent,
            "entities": self.entities.as_dict() if self.entities else None,
            "sentiment": self.sentiment,
            "triageLevel": self.triage_level,
        }

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> Turn:
        return cls(
            role=str(message.get("role") or "user"),
            text=str(message.get("text") or ""),
            timestamp=parse_iso(message.get("created_at")) or utc_now(),
            intent=message.get("intent"),
            entities=Entities.from_dict(message.get("entities")),
            sentiment=message.get("sentiment"),
            triage_level=message.get("triage_level"),
        )


@dataclass
class FollowUpFlags:
    asked_duration: bool = False
    asked_severity: bool = False
    asked_other_symptoms: bool = False

    def as_dict(self) -> dict[str, bool]:
        return {
            "asked_duration": self.asked_duration,
            "asked_severity": self.asked_severity,
            "asked_other_symptoms": self.asked_other_symptoms,
        }


@dataclass
class AppointmentState:
    asked_type: bool = False
    asked_date: bool = False
    asked_reason: bool = False
    appointment_type: str | None = None
    preferred_date: str | None = None
    reason: str | None = None

    @property
    def stage(self) -> str:
        if self.asked_reason:
            return "asked_reason"
        if self.asked_date:
            return "asked_date"
        if self.asked_type:
            return "asked_type"
        return "idle"

    @property
    def in_flow(self) -> bool:
        return self.asked_type or self.asked_date or self.asked_reason

    def reset(self) -> None:
        self.asked_type = False
        self.asked_date = False
        self.asked_reason = False
        self.appointment_type = None
        self.preferred_date = None
        self.reason = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "asked_type": self.asked_type,
            "asked_date": self.asked_date,
            "asked_reason": self.asked_reason,
            "type": self.appointment_type,
            "date": self.preferred_date,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AppointmentState:
        data = data or {}
        return cls(
            asked_type=bool(data.get("asked_type")),
            asked_date=bool(data.get("asked_date")),
            asked_reason=bool(data.get("asked_reason")),
            appointment_type=data.get("type"),
            preferred_date=data.get("date"),
            reason=data.get("reason"),
        )


@dataclass
class UserProfile:
    medications: set[str] = field(default_factory=set)
    symptoms: set[str] = field(default_factory=set)
    conditions: set[str] = field(default_factory=set)

    def as_dict(self) -> dict[str, list[str]]:
        return {
            "medications": sorted(self.medications),
            "symptoms": sorted(self.symptoms),
            "conditions": sorted(self.conditions),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> UserProfile:
        data = data or {}
        return cls(
            medications=set(data.get("medications") or ()),
            symptoms=set(data.get("symptoms") or ()),
            conditions=set(data.get("conditions") or ()),
        )


@dataclass
class SessionContext:
    session_id: str
    turns: list[Turn] = field(default_factory=list)
    current_topic: str | None = None
    follow_ups: dict[str, FollowUpFlags] = field(default_factory=dict)
    appointment: AppointmentState = field(default_factory=AppointmentState)
    profile: UserProfile = field(default_factory=UserProfile)
    created_at: datetime = field(default_factory=utc_now)

    def append(self, turn: Turn) -> None:
        self.turns.append(turn)

    def follow_up_flags(self, topic: str) -> FollowUpFlags:
        return self.follow_ups.setdefault(topic, FollowUpFlags())

    def reset_topic(self, topic: str) -> None:
        self.follow_ups.pop(topic, None)

    def topics(self) -> list[str]:
        seen: list[str] = []
        for turn in self.turns:
            topic = turn.intent or "general"
            if topic not in seen:
                seen.append(topic)
        return seen

    def to_metadata(self) -> dict[str, Any]:
        return {
            "current_topic": self.current_topic,
            "follow_ups": {topic: flags.as_dict() for topic, flags in self.follow_ups.items()},
            "appointment": self.appointment.as_dict(),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> SessionContext:
        metadata = record.get("metadata") or {}
        follow_ups = {
            str(topic): FollowUpFlags(
                asked_duration=bool(flags.get("asked_duration")),
                asked_severity=bool(flags.get("asked_severity")),
                asked_other_symptoms=bool(flags.get("asked_other_symptoms")),
            )
            for topic, flags in (metadata.get("follow_ups") or {}).items()
            if isinstance(flags, dict)
        }
        return cls(
            session_id=str(record["session_id"]),
            turns=[Turn.from_message(message) for message in record.get("messages") or []],
            current_topic=metadata.get("current_topic"),
            follow_ups=follow_ups,
            appointment=AppointmentState.from_dict(metadata.get("appointment")),
            profile=UserProfile.from_dict(record.get("profile")),
            created_at=parse_iso(record.get("created_at")) or utc_now(),
        )


@dataclass
class ChatReply:
    session_id: str
    response: str
    quick_actions: list[str] = field(default_factory=list)
    intent: str | None = None
    triage: TriageResult | None = None
    entities: Entities | None = None
    sentiment: str | None = None
    ai_enhanced: bool = False
    failed: bool = False
    cannot_proceed: bool = False
    conversation_length: int = 0

    def as_payload(self) -> dict[str, Any]:
        return {
            "response": self.response,
            "quickActions": list(self.quick_actions),
            "triage": self.triage.as_dict() if self.triage else None,
            "entities": self.entities.as_dict() if self.entities else None,
            "sentiment": self.sentiment,
            "aiEnhanced": self.ai_enhanced,
            "sessionId": self.session_id,
            "conversationLength": self.conversation_length,
        }
