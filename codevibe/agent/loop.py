"""
Reasoning loop.

A four-state machine driven as an async generator:

    AGENT ──tool calls──▶ TOOLS ──▶ AGENT
      │
      └──text only──▶ AUDITOR ──RETRY──▶ AGENT
                         │
                         └──PASS──▶ DONE

Every state entry counts against ``max_steps``. Hitting that cap, or a
completion failure in AGENT, ends the run with a degraded ``DoneEvent``
instead of an error so the caller always gets a terminal result.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import AsyncGenerator
from enum import Enum

from ..config import AgentConfig
from ..errors import ToolTimeoutError
from ..infra.logging import get_logger
from ..tools import ToolRegistry
from ..types import (
    AssistantMessage,
    AuditEvent,
    CompletionParams,
    DoneEvent,
    LLMProvider,
    LoopEvent,
    Message,
    TextDeltaEvent,
    ToolCall,
    ToolCallEndEvent,
    ToolCallQueuedEvent,
    ToolCallStartEvent,
    ToolContext,
    ToolMessage,
    ToolResult,
)
from .auditor import Auditor

logger = get_logger(__name__)

DEGRADED_RESPONSE = "Error processing request. Please try again."
PROCESSING_LIMIT_RESPONSE = (
    "The agent reached its processing limit while trying to provide the best response."
)
EMPTY_RESPONSE = "No response content"


class LoopState(str, Enum):
    AGENT = "agent"
    TOOLS = "tools"
    AUDITOR = "auditor"
    DONE = "done"


class ReasoningLoop:
    def __init__(
        self,
        provider: LLMProvider,
        config: AgentConfig | None = None,
        auditor_provider: LLMProvider | None = None,
    ) -> None:
        self.provider = provider
        self.config = config or AgentConfig()
        self.auditor = Auditor(auditor_provider or provider, self.config.max_audit_attempts)

    async def run(
        self, messages: list[Message], registry: ToolRegistry, ctx: ToolContext
    ) -> AsyncGenerator[LoopEvent, None]:
        """Drive one run over ``messages``, appending to it in place."""
        start = time.monotonic()
        state = LoopState.AGENT
        steps = 0
        audits = 0
        degraded = False
        pending: list[ToolCall] = []

        while state is not LoopState.DONE:
            if steps >= self.config.max_steps:
                logger.warning("loop.step_limit", session_id=ctx.session_id, steps=steps)
                yield DoneEvent(
                    content=last_response(messages) or PROCESSING_LIMIT_RESPONSE,
                    steps=steps,
                    audits=audits,
                    degraded=True,
                    duration_ms=_elapsed_ms(start),
                )
                return
            steps += 1

            if state is LoopState.AGENT:
                try:
                    text, pending = "", []
                    async for delta in self._complete(messages, registry, pending):
                        text += delta
                        yield TextDeltaEvent(text=delta)
                except Exception as e:
                    logger.warning("llm.failed", session_id=ctx.session_id, error=str(e))
                    messages.append(AssistantMessage(content=DEGRADED_RESPONSE))
                    degraded = True
                    state = LoopState.DONE
                    continue

                messages.append(AssistantMessage(content=text, tool_calls=list(pending)))
                state = LoopState.TOOLS if pending else LoopState.AUDITOR

            elif state is LoopState.TOOLS:
                for call in pending:
                    yield ToolCallQueuedEvent(
                        tool_call_id=call.id, name=call.name, args=_parse_args(call.arguments)
                    )
                for call in pending:
                    args = _parse_args(call.arguments)
                    yield ToolCallStartEvent(tool_call_id=call.id, name=call.name, args=args)
                    result = await self._dispatch(call, registry, ctx)
                    messages.append(
                        ToolMessage(
                            content=result.content,
                            tool_call_id=call.id,
                            is_error=not result.success,
                        )
                    )
                    yield ToolCallEndEvent(
                        tool_call_id=call.id,
                        name=call.name,
                        result=result.content,
                        success=result.success,
                        args=args,
                        duration_ms=result.duration_ms,
                    )
                pending = []
                state = LoopState.AGENT

            elif state is LoopState.AUDITOR:
                prior = sum(1 for m in messages if isinstance(m, AssistantMessage) and m.audit)
                verdict = await self.auditor.review(last_response(messages), prior)
                messages.append(AssistantMessage(content=verdict.message_text(), audit=True))
                audits += 1
                yield AuditEvent(
                    attempt=verdict.attempt,
                    verdict=verdict.verdict,
                    forced=verdict.forced,
                    reason=verdict.reason,
                )
                state = LoopState.DONE if verdict.passed else LoopState.AGENT

        yield DoneEvent(
            content=last_response(messages) or EMPTY_RESPONSE,
            steps=steps,
            audits=audits,
            degraded=degraded,
            duration_ms=_elapsed_ms(start),
        )

    async def _complete(
        self, messages: list[Message], registry: ToolRegistry, tool_calls: list[ToolCall]
    ) -> AsyncGenerator[str, None]:
        """Yield text fragments; requested tool calls are collected into ``tool_calls``."""
        params = CompletionParams(
            messages=messages,
            tools=registry.list(),
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )
        if self.config.stream:
            async for chunk in self.provider.stream(params):
                if chunk.text:
                    yield chunk.text
                if chunk.tool_call:
                    tool_calls.append(chunk.tool_call)
        else:
            result = await self.provider.complete(params)
            tool_calls.extend(result.tool_calls)
            if result.content:
                yield result.content

    async def _dispatch(
        self, call: ToolCall, registry: ToolRegistry, ctx: ToolContext
    ) -> ToolResult:
        t0 = time.monotonic()
        timeout = self.config.tool_timeout_seconds
        try:
            result = await asyncio.wait_for(registry.execute(call, ctx), timeout=timeout)
        except asyncio.TimeoutError:
            err = ToolTimeoutError(call.name, timeout)
            logger.warning("tool.timeout", tool=call.name, timeout=timeout)
            result = ToolResult(
                tool_call_id=call.id, tool_name=call.name, success=False, content=f"Error: {err}"
            )
        result.duration_ms = _elapsed_ms(t0)
        return result


def last_response(messages: list[Message]) -> str:
    """Content of the last non-audit assistant message that carries text."""
    for msg in reversed(messages):
        if isinstance(msg, AssistantMessage) and not msg.audit and msg.content:
            return msg.content
    return ""


def _parse_args(arguments: str) -> dict:
    try:
        args = json.loads(arguments) if arguments else {}
    except (json.JSONDecodeError, TypeError):
        return {}
    return args if isinstance(args, dict) else {}


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
