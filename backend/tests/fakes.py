from __future__ import annotations

from typing import Any, Sequence

from medassist_memory import InMemorySessionStore, SessionStoreError
from medassist_services import AugmentationUnavailable


class FailingAugmenter:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def available(self) -> bool:
        return True

    def generate(self, prompt: str, history: Sequence[dict[str, str]], domain_context: dict[str, Any]) -> str | None:
        self.calls.append(prompt)
        raise AugmentationUnavailable("provider timed out")


class StaticAugmenter:
    def __init__(self, text: str) -> None:
        self.text = text
        self.calls: list[dict[str, Any]] = []

    def available(self) -> bool:
        return True

    def generate(self, prompt: str, history: Sequence[dict[str, str]], domain_context: dict[str, Any]) -> str | None:
        self.calls.append({"prompt": prompt, "history": list(history), "domain_context": dict(domain_context)})
        return self.text


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        self.events.append((event_name, dict(payload)))


class BrokenStore(InMemorySessionStore):
    def get(self, session_id: str) -> dict[str, Any] | None:
        raise SessionStoreError("get failed: disk unavailable")

    def create(self, session_id: str, profile: dict[str, Any], metadata: dict[str, Any]) -> None:
        raise SessionStoreError("create failed: disk unavailable")

    def update(self, session_id: str, profile: dict[str, Any], metadata: dict[str, Any]) -> None:
        raise SessionStoreError("update failed: disk unavailable")

    def append_message(
        self,
        session_id: str,
        role: str,
        text: str,
        annotations: dict[str, Any] | None = None,
    ) -> None:
        raise SessionStoreError("append_message failed: disk unavailable")
