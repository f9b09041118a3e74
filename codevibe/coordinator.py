"""
Session execution coordinator.

Entry point for one invocation: validates input, acknowledges at once and
runs the rest in a background task. The run resolves intent, acquires an
environment when needed, drives the reasoning loop, translates its events
into stream frames on the bus and persists the resulting turns. Every run
publishes exactly one terminal frame (``complete`` or ``error``).
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any

from .agent import ReasoningLoop, build_system_prompt
from .config import AgentConfig
from .errors import CodevibeError, InvocationError, SandboxError
from .events import EventBus
from .infra.logging import get_logger
from .intent import classify
from .sandbox import Acquisition, EnvironmentManager, SandboxHandle
from .session import ConversationTurn, SessionRecord, SessionStore
from .tools.docs import DocsLookup
from .tools.memory import SessionMemoryStore
from .tools.toolset import build_toolset
from .types import (
    AssistantMessage,
    AuditEvent,
    DoneEvent,
    EventType,
    LLMProvider,
    Message,
    StreamEvent,
    SystemMessage,
    TextDeltaEvent,
    ToolCallEndEvent,
    ToolCallQueuedEvent,
    ToolCallStartEvent,
    ToolContext,
    UserMessage,
)

logger = get_logger(__name__)

FILE_CREATING_TOOLS = frozenset({"write_file"})
FILE_MODIFYING_TOOLS = frozenset({"edit_file"})


def new_session_id() -> str:
    return f"session-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class Acknowledgment:
    accepted: bool
    session_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"accepted": self.accepted, "sessionId": self.session_id}


@dataclass
class RunResult:
    session_id: str
    status: str  # "complete" | "error"
    response: str | None = None
    error: str | None = None
    environment_url: str | None = None
    degraded: bool = False
    events: list[StreamEvent] = field(default_factory=list)


class _Run:
    """Publishes a run's frames and remembers them; nothing after the terminal one."""

    def __init__(self, bus: EventBus, session_id: str) -> None:
        self.bus = bus
        self.session_id = session_id
        self.events: list[StreamEvent] = []
        self.terminal: StreamEvent | None = None
        self.handle: SandboxHandle | None = None
        self.persisted = False

    @property
    def environment_url(self) -> str | None:
        return self.handle.url if self.handle else None

    async def emit(self, type: EventType, payload: dict[str, Any]) -> StreamEvent | None:
        if self.terminal is not None:
            return None
        event = await self.bus.publish(self.session_id, type, payload)
        self.events.append(event)
        if event.is_terminal:
            self.terminal = event
        return event

    async def fail(self, message: str) -> RunResult:
        payload: dict[str, Any] = {"message": message}
        if self.environment_url:
            payload["environmentUrl"] = self.environment_url
        await self.emit(EventType.ERROR, payload)
        return RunResult(
            session_id=self.session_id,
            status="error",
            error=message,
            environment_url=self.environment_url,
            events=self.events,
        )


class SessionCoordinator:
    def __init__(
        self,
        provider: LLMProvider,
        bus: EventBus,
        store: SessionStore,
        environments: EnvironmentManager,
        docs: DocsLookup | None = None,
        memory: SessionMemoryStore | None = None,
        config: AgentConfig | None = None,
        auditor_provider: LLMProvider | None = None,
    ) -> None:
        self.bus = bus
        self.store = store
        self.environments = environments
        self.docs = docs or DocsLookup()
        self.memory = memory or SessionMemoryStore()
        self.config = config or AgentConfig()
        self.loop = ReasoningLoop(provider, self.config, auditor_provider)
        self._runs: set[asyncio.Task] = set()

    async def invoke(
        self, prompt: str, session_id: str | None = None, environment_ref: str | None = None
    ) -> Acknowledgment:
        """Validate, start the run in the background and acknowledge."""
        if not isinstance(prompt, str) or not prompt.strip():
            raise InvocationError("prompt must be a non-empty string")
        session_id = session_id or new_session_id()
        task = asyncio.create_task(
            self.execute(prompt, session_id, environment_ref), name=f"run-{session_id}"
        )
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)
        logger.info("run.accepted", session_id=session_id)
        return Acknowledgment(accepted=True, session_id=session_id)

    async def execute(
        self, prompt: str, session_id: str, environment_ref: str | None = None
    ) -> RunResult:
        """Run to completion. Never raises; failures become the run's error frame."""
        run = _Run(self.bus, session_id)
        log = logger.bind(session_id=session_id)
        try:
            return await self._execute(run, prompt, environment_ref)
        except Exception as e:
            log.exception("run.failed")
            err = CodevibeError.wrap(e)
            if run.terminal is not None:
                return RunResult(
                    session_id=session_id,
                    status=run.terminal.type.value,
                    response=run.terminal.payload.get("response"),
                    error=err.message,
                    environment_url=run.environment_url,
                    events=run.events,
                )
            if not run.persisted:
                await self._persist_prompt(run, prompt)
            try:
                return await run.fail(err.message or type(e).__name__)
            except CodevibeError as publish_err:
                log.error("run.error_unpublished", error=str(publish_err))
                return RunResult(session_id=session_id, status="error", error=err.message)

    async def drain(self) -> None:
        """Wait for every in-flight run to finish."""
        if self._runs:
            await asyncio.gather(*list(self._runs), return_exceptions=True)

    @property
    def active_runs(self) -> int:
        return len(self._runs)

    async def _execute(self, run: _Run, prompt: str, environment_ref: str | None) -> RunResult:
        session_id = run.session_id
        record = await self.store.get_or_create(session_id)
        decision = classify(prompt, environment_ref or record.environment_ref)
        logger.info(
            "run.started",
            session_id=session_id,
            needs_environment=decision.needs_environment,
            reuse=decision.reuse_provided,
        )

        if decision.needs_environment:
            async def on_change(acquisition: Acquisition) -> None:
                await run.emit(EventType.SANDBOX, acquisition.to_payload())
                await self._bind(session_id, acquisition.handle)

            try:
                acquisition = await self.environments.acquire(
                    decision.environment_ref, on_change=on_change
                )
            except SandboxError as e:
                logger.error("sandbox.acquire_failed", session_id=session_id, error=e.message)
                await self._persist_prompt(run, prompt)
                return await run.fail(f"Failed to prepare execution environment: {e.message}")

            run.handle = acquisition.handle
            if record.environment_ref != acquisition.handle.id:
                await self._bind(session_id, acquisition.handle)

        has_env = run.handle is not None
        await run.emit(
            EventType.STATUS,
            {
                "status": "started",
                "message": "Working in the execution environment"
                if has_env
                else "Answering without an execution environment",
                "hasEnvironment": has_env,
            },
        )

        service = self.environments.service if has_env else None
        registry = build_toolset(self.docs, self.memory, service, run.handle)
        messages = self._build_messages(record, prompt, registry, run.handle)
        ctx = ToolContext(session_id=session_id, sandbox_id=run.handle.id if has_env else None)

        cumulative = ""
        created: list[str] = []
        modified: list[str] = []
        last_action = ""
        done: DoneEvent | None = None

        async for event in self.loop.run(messages, registry, ctx):
            if isinstance(event, TextDeltaEvent):
                cumulative += event.text
                await run.emit(EventType.PARTIAL, {"fragment": event.text, "cumulative": cumulative})
            elif isinstance(event, ToolCallQueuedEvent):
                await run.emit(
                    EventType.TOOL, {"name": event.name, "args": event.args, "status": "pending"}
                )
            elif isinstance(event, ToolCallStartEvent):
                await run.emit(
                    EventType.TOOL, {"name": event.name, "args": event.args, "status": "running"}
                )
            elif isinstance(event, ToolCallEndEvent):
                await run.emit(
                    EventType.TOOL,
                    {
                        "name": event.name,
                        "args": event.args,
                        "result": event.result,
                        "status": "complete" if event.success else "error",
                    },
                )
                path = (event.args or {}).get("path")
                if event.success and path:
                    if event.name in FILE_CREATING_TOOLS:
                        created.append(path)
                        last_action = f"Created {path}"
                    elif event.name in FILE_MODIFYING_TOOLS:
                        modified.append(path)
                        last_action = f"Modified {path}"
            elif isinstance(event, AuditEvent):
                await run.emit(
                    EventType.STATUS,
                    {
                        "status": "audit",
                        "message": f"Audit {event.verdict}",
                        "attempt": event.attempt,
                        "verdict": event.verdict,
                        "forced": event.forced,
                        "hasEnvironment": has_env,
                    },
                )
            elif isinstance(event, DoneEvent):
                done = event

        if done is None:
            raise CodevibeError("LOOP_INCOMPLETE", "Reasoning loop ended without a result")

        if created or modified:
            summary = record.work_summary
            summary.record(created=created, modified=modified, last_action=last_action)
            await self.store.update_work_summary(session_id, summary)

        await self.store.append_turns(
            session_id,
            [ConversationTurn("user", prompt), ConversationTurn("assistant", done.content)],
        )
        run.persisted = True
        await run.emit(
            EventType.COMPLETE,
            {
                "response": done.content,
                "environmentUrl": run.environment_url,
                "hasEnvironment": has_env,
                "degraded": done.degraded,
            },
        )
        logger.info(
            "run.completed",
            session_id=session_id,
            steps=done.steps,
            audits=done.audits,
            degraded=done.degraded,
            duration_ms=done.duration_ms,
        )
        return RunResult(
            session_id=session_id,
            status="complete",
            response=done.content,
            environment_url=run.environment_url,
            degraded=done.degraded,
            events=run.events,
        )

    async def _persist_prompt(self, run: _Run, prompt: str) -> None:
        """Record the user turn of a run that ends without an answer."""
        try:
            await self.store.append_turns(run.session_id, [ConversationTurn("user", prompt)])
        except Exception as e:
            logger.error("run.persist_failed", session_id=run.session_id, error=str(e))
        run.persisted = True

    async def _bind(self, session_id: str, handle: SandboxHandle) -> None:
        await self.store.bind_environment(session_id, handle.id, handle.url, handle.created_at)

    def _build_messages(
        self, record: SessionRecord, prompt: str, registry, handle: SandboxHandle | None
    ) -> list[Message]:
        summary = record.work_summary
        system = build_system_prompt(
            registry.list(),
            sandbox_id=handle.id if handle else None,
            sandbox_url=handle.url if handle else None,
            work_summary=None if summary.is_empty else summary.to_text(),
        )
        messages: list[Message] = [SystemMessage(content=system)]
        for turn in record.conversation_history:
            if turn.role == "user":
                messages.append(UserMessage(content=turn.content))
            else:
                messages.append(AssistantMessage(content=turn.content))
        messages.append(UserMessage(content=prompt))
        return messages
