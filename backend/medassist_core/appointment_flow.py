from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from .knowledge import BOOKING_TRIGGERS
from .models import AppointmentState
from .templates import RESPONSE_TEMPLATES, TemplateSelector, pick, random_selector


TYPE_QUICK_ACTIONS = ["General Checkup", "Specialist Visit", "Follow-up", "Emergency"]
DATE_QUICK_ACTIONS = ["Tomorrow", "Next Week", "This Week", "Cancel"]
REASON_QUICK_ACTIONS = ["Routine Checkup", "Follow-up", "Symptoms", "Other"]
COMPLETED_QUICK_ACTIONS = ["New Appointment", "View Details", "Contact Support"]

SCHEDULING_PHONE = "(555) 123-4567"
SCHEDULING_PORTAL = "www.healthcareportal.com"


@dataclass
class FlowResult:
    status: str
    stage: str
    response: str = ""
    quick_actions: list[str] = field(default_factory=list)
    summary: dict[str, Any] | None = None

    @property
    def handled(self) -> bool:
        return self.status in {"advanced", "completed"}


def _summary_text(summary: dict[str, Any]) -> str:
    return (
        "Perfect! I have your appointment details:\n\n"
        f"**Appointment Type:** {summary['type'] or 'General'}\n"
        f"**Preferred Date:** {summary['date'] or 'Not specified'}\n"
        f"**Reason:** {summary['reason']}\n\n"
        "To complete your booking, you can:\n"
        f"1. Call our scheduling line at {SCHEDULING_PHONE}\n"
        f"2. Visit our online portal at {SCHEDULING_PORTAL}\n"
        "3. Use our mobile app\n\n"
        "Our team will confirm your appointment within 24 hours."
    )


class AppointmentFlowController:
    def __init__(
        self,
        triggers: Sequence[str] = BOOKING_TRIGGERS,
        *,
        selector: TemplateSelector | None = None,
    ) -> None:
        self.triggers = frozenset(trigger.lower() for trigger in triggers)
        self.selector = selector or random_selector()

    def is_trigger(self, message: str) -> bool:
        return (message or "").lower().strip() in self.triggers

    def advance(self, session_id: str | None, state: AppointmentState, message: str) -> FlowResult:
        if not session_id:
            return FlowResult(status="cannot_proceed", stage=state.stage)

        text = (message or "").strip()
        stage = state.stage

        if stage == "idle":
            if not self.is_trigger(text):
                return FlowResult(status="no_transition", stage=stage)
            state.asked_type = True
            response = pick(RESPONSE_TEMPLATES["appointment"], self.selector)
            return FlowResult(
                status="advanced",
                stage=state.stage,
                response=f"{response}\n\nWhat type of appointment are you looking for?",
                quick_actions=list(TYPE_QUICK_ACTIONS),
            )

        if stage == "asked_type":
            if self.is_trigger(text):
                return FlowResult(status="no_transition", stage=stage)
            state.appointment_type = text
            state.asked_date = True
            return FlowResult(
                status="advanced",
                stage=state.stage,
                response=(
                    f"Thank you! You're looking for a {text} appointment. "
                    'What date would work best for you? You can say things like "tomorrow", "next week", '
                    "or a specific date."
                ),
                quick_actions=list(DATE_QUICK_ACTIONS),
            )

        if stage == "asked_date":
            state.preferred_date = text
            state.asked_reason = True
            return FlowResult(
                status="advanced",
                stage=state.stage,
                response=(
                    f"Great! {text} works. "
                    "What is the reason for your visit? (e.g., routine checkup, specific symptoms, follow-up)"
                ),
                quick_actions=list(REASON_QUICK_ACTIONS),
            )

        state.reason = text
        summary = {
            "type": state.appointment_type,
            "date": state.preferred_date,
            "reason": state.reason,
            "contact": {"phone": SCHEDULING_PHONE, "portal": SCHEDULING_PORTAL},
        }
        state.reset()
        return FlowResult(
            status="completed",
            stage=state.stage,
            response=_summary_text(summary),
            quick_actions=list(COMPLETED_QUICK_ACTIONS),
            summary=summary,
        )
