from __future__ import annotations

import importlib
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from fakes import FailingAugmenter, RecordingNotifier  # noqa: E402
from medassist_core import (  # noqa: E402
    AppointmentFlowController,
    ContextCache,
    DialogueEngine,
    MetricsCollector,
    ResponseComposer,
    TriageEngine,
    fixed_selector,
)
from medassist_memory import InMemoryAnalyticsSink, InMemorySessionStore  # noqa: E402


@pytest.fixture
def backend_module(tmp_path, monkeypatch):
    db_path = tmp_path / "medassist-test.sqlite"
    monkeypatch.setenv("MEDASSIST_DB_PATH", str(db_path))
    monkeypatch.setenv("MEDASSIST_STORE", "sqlite")
    # Keep CI deterministic; provider tests inject their own augmenter.
    monkeypatch.setenv("MEDASSIST_DISABLE_LLM", "true")
    monkeypatch.setenv("MEDASSIST_TEMPLATE_SEED", "7")
    monkeypatch.setenv("MEDASSIST_RATE_LIMIT_MAX", "30")

    if "main" in sys.modules:
        module = importlib.reload(sys.modules["main"])
    else:
        module = importlib.import_module("main")
    return module


@pytest.fixture
def client(backend_module):
    with TestClient(backend_module.app) as test_client:
        yield test_client


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def analytics() -> InMemoryAnalyticsSink:
    return InMemoryAnalyticsSink()


@pytest.fixture
def make_engine(store, notifier, analytics):
    def _make(augmenter=None, **overrides) -> DialogueEngine:
        metrics = overrides.pop("metrics", None) or MetricsCollector()
        options = {
            "cache": ContextCache(store),
            "composer": ResponseComposer(augmenter or FailingAugmenter(), selector=fixed_selector(0)),
            "triage": TriageEngine(metrics=metrics),
            "flow": AppointmentFlowController(selector=fixed_selector(0)),
            "metrics": metrics,
            "notifier": notifier,
            "analytics": analytics,
        }
        options.update(overrides)
        return DialogueEngine(**options)

    return _make
