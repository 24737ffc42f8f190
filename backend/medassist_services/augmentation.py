from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

import httpx

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are a professional healthcare assistant chatbot. Provide general health information and guidance, "
    "help users understand symptoms and when to seek care, and share wellness and preventive care tips. "
    "Assist with medication questions but always recommend consulting a pharmacist or doctor. "
    "Never diagnose or prescribe; always recommend professional medical consultation. "
    "For emergencies, direct users to contact emergency services immediately. "
    "Keep answers concise, empathetic, and consistent with the earlier conversation."
)


class AugmentationUnavailable(Exception):
    pass


class GenerativeAugmenter(Protocol):
    def available(self) -> bool: ...

    def generate(
        self,
        prompt: str,
        history: Sequence[dict[str, str]],
        domain_context: dict[str, Any],
    ) -> str | None: ...


@dataclass(frozen=True)
class ProviderConfig:
    provider: str
    base_url: str
    api_key: str
    model: str


class NullAugmenter:
    def available(self) -> bool:
        return False

    def generate(
        self,
        prompt: str,
        history: Sequence[dict[str, str]],
        domain_context: dict[str, Any],
    ) -> str | None:
        return None


def _provider_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return f"HTTP {response.status_code}: {error['message']}"
        if isinstance(error, str):
            return f"HTTP {response.status_code}: {error}"
    return f"HTTP {response.status_code}"


def _coerce_completion_text(response_json: dict[str, Any]) -> str:
    choices = response_json.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            item["text"] for item in content if isinstance(item, dict) and isinstance(item.get("text"), str)
        )
    return ""


def _coerce_anthropic_text(response_json: dict[str, Any]) -> str:
    content = response_json.get("content")
    if not isinstance(content, list):
        return ""
    parts = [
        item["text"].strip()
        for item in content
        if isinstance(item, dict) and item.get("type") == "text" and isinstance(item.get("text"), str)
    ]
    return "\n".join(part for part in parts if part).strip()


class LLMAugmenter:
    def __init__(
        self,
        providers: Sequence[ProviderConfig],
        *,
        timeout_seconds: float = 20.0,
        anthropic_version: str = "2023-06-01",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.providers = list(providers)
        self.timeout_seconds = timeout_seconds
        self.anthropic_version = anthropic_version
        self._transport = transport

    def available(self) -> bool:
        return bool(self.providers)

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout_seconds, connect=min(8.0, self.timeout_seconds)),
            transport=self._transport,
        )

    def _conversation(self, history: Sequence[dict[str, str]], prompt: str) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        for turn in list(history)[-15:]:
            role = str(turn.get("role") or "").strip().lower()
            content = str(turn.get("content") or "").strip()
            if role in {"user", "assistant"} and content:
                messages.append({"role": role, "content": content[:1200]})
        messages.append({"role": "user", "content": prompt.strip()[:2000]})
        return messages

    def _openai_compatible(
        self,
        provider: ProviderConfig,
        history: Sequence[dict[str, str]],
        prompt: str,
        context_blob: str,
    ) -> str | None:
        payload = {
            "model": provider.model,
            "temperature": 0.7,
            "max_tokens": 500,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "system", "content": f"Session context JSON:\n{context_blob}"},
                *self._conversation(history, prompt),
            ],
        }
        headers = {
            "Authorization": f"Bearer {provider.api_key}",
            "Content-Type": "application/json",
        }
        with self._client() as client:
            response = client.post(f"{provider.base_url}/chat/completions", headers=headers, json=payload)
        if response.status_code >= 400:
            raise AugmentationUnavailable(_provider_error_message(response))
        return _coerce_completion_text(response.json()).strip() or None

    def _anthropic(
        self,
        provider: ProviderConfig,
        history: Sequence[dict[str, str]],
        prompt: str,
        context_blob: str,
    ) -> str | None:
        payload = {
            "model": provider.model,
            "max_tokens": 500,
            "temperature": 0.7,
            "system": f"{SYSTEM_PROMPT}\n\nSession context JSON:\n{context_blob}",
            "messages": self._conversation(history, prompt),
        }
        headers = {
            "x-api-key": provider.api_key,
            "anthropic-version": self.anthropic_version,
            "Content-Type": "application/json",
        }
        with self._client() as client:
            response = client.post(f"{provider.base_url}/messages", headers=headers, json=payload)
        if response.status_code >= 400:
            raise AugmentationUnavailable(_provider_error_message(response))
        return _coerce_anthropic_text(response.json()) or None

    def generate(
        self,
        prompt: str,
        history: Sequence[dict[str, str]],
        domain_context: dict[str, Any],
    ) -> str | None:
        if not self.providers:
            return None
        context_blob = json.dumps(domain_context, ensure_ascii=True, default=str)
        for provider in self.providers:
            try:
                if provider.provider == "anthropic":
                    text = self._anthropic(provider, history, prompt, context_blob)
                else:
                    text = self._openai_compatible(provider, history, prompt, context_blob)
            except (httpx.HTTPError, AugmentationUnavailable, ValueError) as exc:
                logger.warning("generative augmentation failed (%s): %s", provider.provider, exc)
                continue
            if text:
                logger.info("generative augmentation provider used (%s)", provider.provider)
                return text
            logger.warning("generative augmentation empty response (%s)", provider.provider)
        return None
