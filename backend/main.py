from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from medassist_core import (
    AppointmentFlowController,
    ChatReply,
    ContextCache,
    DialogueEngine,
    InteractionChecker,
    MetricsCollector,
    ResponseComposer,
    TriageEngine,
    random_selector,
)
from medassist_memory import (
    InMemoryAnalyticsSink,
    InMemorySessionStore,
    SessionLocks,
    SessionStoreError,
    SQLiteAnalyticsSink,
    SQLiteSessionDB,
    SQLiteSessionStore,
)
from medassist_memory.time_utils import to_iso, utc_now
from medassist_services import LLMAugmenter, NotificationHub, NullAugmenter
from settings import Settings

logger = logging.getLogger("medassist")


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    session_id: str | None = Field(default=None, alias="sessionId")


class ClearSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")


@dataclass
class RateDecision:
    allowed: bool
    reset_in_ms: int = 0


class SessionRateLimiter:
    def __init__(
        self,
        *,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._buckets: dict[str, tuple[int, float]] = {}

    def check(self, session_id: str) -> RateDecision:
        now = self._clock()
        with self._lock:
            self._prune(now)
            count, reset_at = self._buckets.get(session_id, (0, now + self.window_seconds))
            if count >= self.max_requests:
                return RateDecision(allowed=False, reset_in_ms=int((reset_at - now) * 1000))
            self._buckets[session_id] = (count + 1, reset_at)
        return RateDecision(allowed=True)

    def _prune(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._buckets.items() if now > reset_at]
        for key in expired:
            del self._buckets[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)


def _new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class MedAssistApp:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings.from_env()
        if self.settings.store_backend == "memory":
            self.db = None
            self.store = InMemorySessionStore()
            self.analytics = InMemoryAnalyticsSink()
        else:
            self.db = SQLiteSessionDB(self.settings.db_path)
            self.store = SQLiteSessionStore(self.db)
            self.analytics = SQLiteAnalyticsSink(self.db)

        if self.settings.disable_llm or not self.settings.providers:
            augmenter = NullAugmenter()
        else:
            augmenter = LLMAugmenter(
                self.settings.providers,
                timeout_seconds=self.settings.llm_timeout_seconds,
                anthropic_version=self.settings.anthropic_version,
            )

        self.notifications = NotificationHub()
        self.metrics = MetricsCollector()
        self.cache = ContextCache(self.store)
        self.locks = SessionLocks()
        self.rate_limiter = SessionRateLimiter(
            max_requests=self.settings.rate_limit_max,
            window_seconds=self.settings.rate_limit_window_seconds,
        )
        self.engine = DialogueEngine(
            cache=self.cache,
            composer=ResponseComposer(augmenter, selector=random_selector(self.settings.template_seed)),
            triage=TriageEngine(metrics=self.metrics),
            checker=InteractionChecker(),
            flow=AppointmentFlowController(selector=random_selector(self.settings.template_seed)),
            metrics=self.metrics,
            notifier=self.notifications,
            analytics=self.analytics,
        )


container = MedAssistApp()
logging.basicConfig(
    level=getattr(logging, container.settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
app = FastAPI(title="MedAssist Backend")

app.add_middleware(
    CORSMiddleware,
    allow_origins=container.settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _emit_sse(event: str, data: dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


def _prepare_turn(payload: ChatRequest) -> tuple[str, str]:
    message = (payload.message or "").strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message is required")
    session_id = (payload.session_id or "").strip() or _new_session_id()
    decision = container.rate_limiter.check(session_id)
    if not decision.allowed:
        raise HTTPException(
            status_code=429,
            detail={
                "error": "Too many requests. Please slow down.",
                "resetIn": max(1, decision.reset_in_ms // 1000),
            },
        )
    return message, session_id


def _run_turn(message: str, session_id: str) -> ChatReply:
    with container.locks.hold(session_id):
        return container.engine.handle_turn(message, session_id)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "timestamp": to_iso(utc_now()),
        "store": container.settings.store_backend,
        "aiAvailable": container.engine.composer.augmentation_available(),
        "activeSessions": len(container.cache),
    }


@app.post("/api/chat")
def chat(payload: ChatRequest):
    message, session_id = _prepare_turn(payload)
    reply = _run_turn(message, session_id)
    if reply.cannot_proceed:
        return JSONResponse(status_code=400, content={"error": reply.response, "sessionId": reply.session_id})
    if reply.failed:
        return JSONResponse(status_code=500, content={"error": reply.response, "sessionId": reply.session_id})
    return reply.as_payload()


@app.post("/api/chat/stream")
def chat_stream(payload: ChatRequest):
    message, session_id = _prepare_turn(payload)

    def event_stream():
        try:
            reply = _run_turn(message, session_id)
            if reply.failed or reply.cannot_proceed:
                yield _emit_sse("error", {"message": reply.response, "sessionId": reply.session_id})
                return
            for chunk in reply.response:
                yield _emit_sse("token", {"delta": chunk})
            yield _emit_sse("message", reply.as_payload())
        except Exception as exc:
            logger.exception("chat_stream error: %s", exc)
            yield _emit_sse("error", {"message": "Chat pipeline error.", "sessionId": session_id})

    return StreamingResponse(event_stream(), media_type="text/event-stream")


@app.get("/api/history/{session_id}")
def history(session_id: str):
    turns = container.engine.history(session_id)
    if turns is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"sessionId": session_id, "history": turns}


@app.post("/api/clear-session")
def clear_session(payload: ClearSessionRequest):
    with container.locks.hold(payload.session_id):
        cleared = container.engine.clear_session(payload.session_id)
    return {"success": True, "cleared": cleared, "message": "Session cleared"}


@app.get("/api/export/{session_id}")
def export_session(session_id: str):
    exported = container.engine.export(session_id)
    if exported is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return exported


@app.get("/api/search")
def search(q: str = Query(default=""), limit: int = Query(default=100, ge=1, le=500)):
    query = q.strip()
    if len(query) < 2:
        raise HTTPException(status_code=400, detail="Search query must be at least 2 characters")
    try:
        results = container.store.search_messages(query, limit=limit)
    except SessionStoreError as exc:
        logger.warning("message search failed: %s", exc)
        raise HTTPException(status_code=503, detail="Search is temporarily unavailable") from exc
    return {"query": query, "count": len(results), "results": results}


@app.get("/api/profile/{session_id}")
def profile(session_id: str):
    data = container.engine.profile(session_id)
    if data is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return data


@app.get("/api/admin/analytics")
def admin_analytics():
    return container.engine.analytics_snapshot()


@app.get("/api/admin/sessions")
def admin_sessions():
    sessions = container.engine.session_summaries()
    return {"count": len(sessions), "sessions": sessions}


@app.get("/api/alerts/stream")
def alerts_stream(after: int = Query(default=0, ge=0)):
    events = container.notifications.events_after(after, event_name="emergency_alert")

    def event_stream():
        for event in events:
            yield _emit_sse(event["event"], {"id": event["id"], **event["data"]})
        yield _emit_sse("done", {"lastId": events[-1]["id"] if events else after})

    return StreamingResponse(event_stream(), media_type="text/event-stream")
