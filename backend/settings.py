from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from medassist_services import ProviderConfig

_ENV_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_TRUE_VALUES = {"1", "true", "yes", "on"}


def _load_local_env_file(path: Path) -> None:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not _ENV_KEY_RE.fullmatch(key):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        os.environ.setdefault(key, value)


def bootstrap_local_env() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    for candidate in (repo_root / ".env", repo_root / "backend/.env"):
        if candidate.exists():
            _load_local_env_file(candidate)


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env_str(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(_env_str(name, str(default)))
    except ValueError:
        return default


_PROVIDER_ALIASES = {
    "claude": "anthropic",
    "anthropic": "anthropic",
    "openrouter": "openrouter",
    "openai": "openai",
}


def chat_provider_candidates() -> list[ProviderConfig]:
    provider_preference = _env_str("MEDASSIST_CHAT_PROVIDER", "auto").lower()
    candidates: list[ProviderConfig] = []

    anthropic_api_key = _env_str("ANTHROPIC_API_KEY")
    if anthropic_api_key:
        candidates.append(
            ProviderConfig(
                provider="anthropic",
                base_url=_env_str("ANTHROPIC_API_BASE_URL", "https://api.anthropic.com/v1").rstrip("/"),
                api_key=anthropic_api_key,
                model=_env_str("ANTHROPIC_MODEL", "claude-3-5-sonnet-latest"),
            )
        )

    openrouter_api_key = _env_str("OPENROUTER_API_KEY")
    if openrouter_api_key:
        candidates.append(
            ProviderConfig(
                provider="openrouter",
                base_url=_env_str("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").rstrip("/"),
                api_key=openrouter_api_key,
                model=_env_str("OPENROUTER_MODEL", "openai/gpt-4o-mini"),
            )
        )

    openai_api_key = _env_str("OPENAI_API_KEY")
    if openai_api_key:
        candidates.append(
            ProviderConfig(
                provider="openai",
                base_url=_env_str("OPENAI_API_BASE_URL", "https://api.openai.com/v1").rstrip("/"),
                api_key=openai_api_key,
                model=_env_str("MEDASSIST_CHAT_MODEL", "gpt-3.5-turbo"),
            )
        )

    if provider_preference in {"", "auto"}:
        return candidates
    canonical = _PROVIDER_ALIASES.get(provider_preference)
    if not canonical:
        return candidates
    preferred = [candidate for candidate in candidates if candidate.provider == canonical]
    others = [candidate for candidate in candidates if candidate.provider != canonical]
    return preferred + others


@dataclass(frozen=True)
class Settings:
    db_path: str
    store_backend: str = "sqlite"
    providers: list[ProviderConfig] = field(default_factory=list)
    disable_llm: bool = False
    llm_timeout_seconds: float = 20.0
    anthropic_version: str = "2023-06-01"
    rate_limit_max: int = 30
    rate_limit_window_seconds: int = 60
    template_seed: int | None = None
    allowed_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        bootstrap_local_env()
        seed_raw = _env_str("MEDASSIST_TEMPLATE_SEED")
        try:
            template_seed = int(seed_raw) if seed_raw else None
        except ValueError:
            template_seed = None
        store_backend = _env_str("MEDASSIST_STORE", "sqlite").lower()
        return cls(
            db_path=_env_str(
                "MEDASSIST_DB_PATH",
                str(Path(__file__).resolve().parent / "medassist.sqlite"),
            ),
            store_backend=store_backend if store_backend in {"sqlite", "memory"} else "sqlite",
            providers=chat_provider_candidates(),
            disable_llm=_env_bool("MEDASSIST_DISABLE_LLM"),
            llm_timeout_seconds=max(1.0, _env_float("MEDASSIST_LLM_TIMEOUT_SECONDS", 20.0)),
            anthropic_version=_env_str("ANTHROPIC_API_VERSION", "2023-06-01"),
            rate_limit_max=max(1, _env_int("MEDASSIST_RATE_LIMIT_MAX", 30)),
            rate_limit_window_seconds=max(1, _env_int("MEDASSIST_RATE_LIMIT_WINDOW_SECONDS", 60)),
            template_seed=template_seed,
            allowed_origins=[
                origin.strip()
                for origin in _env_str("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
                if origin.strip()
            ],
            log_level=_env_str("MEDASSIST_LOG_LEVEL", "INFO").upper(),
        )
