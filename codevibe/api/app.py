"""
HTTP boundary.

    POST /api/invoke                  start a run, acknowledge immediately
    GET  /api/stream?sessionId=...    SSE stream of a session's frames
    GET  /api/sessions                most recently updated sessions
    GET  /api/sessions/{id}           one session record
    POST /api/sessions/{id}/share     make a session public
    GET  /api/share/{token}           public session by share token
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from sse_starlette.sse import EventSourceResponse

from ..config import Settings
from ..coordinator import SessionCoordinator
from ..errors import InvocationError
from ..events import EventBus, Subscription
from ..infra.logging import configure_logging, get_logger
from ..providers import OpenAIProvider
from ..sandbox import EnvironmentManager, LocalSandboxService
from ..session import InMemorySessionStore
from ..tools.docs import DocsLookup
from .models import InvokeRequest, InvokeResponse, SessionSummary, ShareResponse

logger = get_logger(__name__)


def build_coordinator(settings: Settings) -> SessionCoordinator:
    return SessionCoordinator(
        provider=OpenAIProvider(settings.llm),
        bus=EventBus(settings.bus),
        store=InMemorySessionStore(history_limit=settings.history_limit),
        environments=EnvironmentManager(LocalSandboxService(settings.sandbox)),
        docs=DocsLookup(settings.docs),
        config=settings.agent,
    )


async def event_frames(sub: Subscription) -> AsyncGenerator[dict[str, Any], None]:
    """SSE frames for one subscription; unsubscribes when the client goes away."""
    try:
        async for event in sub:
            frame: dict[str, Any] = {"event": event.type.value, "data": json.dumps(event.to_dict())}
            if event.sequence:
                frame["id"] = str(event.sequence)
            yield frame
    finally:
        sub.close()


def create_app(
    coordinator: SessionCoordinator | None = None, settings: Settings | None = None
) -> FastAPI:
    if coordinator is None:
        settings = settings or Settings.from_env()
        configure_logging(settings.log_level, json_format=settings.log_json)
        coordinator = build_coordinator(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await coordinator.drain()
        await coordinator.bus.shutdown()

    app = FastAPI(title="CodeVibe", version="0.1.0", lifespan=lifespan)
    app.state.coordinator = coordinator

    @app.post("/api/invoke", response_model=InvokeResponse)
    async def invoke(body: InvokeRequest) -> dict[str, Any]:
        try:
            ack = await coordinator.invoke(body.prompt, body.session_id, body.environment_ref)
        except InvocationError as e:
            raise HTTPException(status_code=400, detail=e.message) from e
        return ack.to_dict()

    @app.get("/api/stream")
    async def stream(request: Request, session_id: str = Query(..., alias="sessionId")):
        sub = coordinator.bus.subscribe(session_id)
        logger.info("stream.connected", session_id=session_id, client=str(request.client))
        return EventSourceResponse(event_frames(sub))

    @app.get("/api/sessions")
    async def list_sessions(limit: int = Query(10, ge=1, le=100)) -> list[dict[str, Any]]:
        records = await coordinator.store.list_sessions(limit)
        return [SessionSummary.from_record(r).model_dump(by_alias=True) for r in records]

    @app.get("/api/sessions/{session_id}")
    async def get_session(session_id: str) -> dict[str, Any]:
        record = await coordinator.store.get(session_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
        return record.to_dict()

    @app.post("/api/sessions/{session_id}/share")
    async def share_session(session_id: str) -> dict[str, Any]:
        try:
            record = await coordinator.store.share(session_id)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Session {session_id} not found") from None
        return ShareResponse(
            session_id=record.id, share_token=record.share_token, is_public=record.is_public
        ).model_dump(by_alias=True)

    @app.get("/api/share/{token}")
    async def shared_session(token: str) -> dict[str, Any]:
        record = await coordinator.store.get_by_share_token(token)
        if record is None:
            raise HTTPException(status_code=404, detail="Shared session not found")
        return record.to_dict()

    return app
