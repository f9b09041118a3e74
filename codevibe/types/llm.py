"""Completion service types."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Literal, Protocol, runtime_checkable

from .messages import Message, ToolCall
from .tools import ToolDefinition

FinishReason = Literal["stop", "tool_calls", "length"]


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class CompletionParams:
    messages: list[Message]
    tools: list[ToolDefinition] = field(default_factory=list)
    max_tokens: int = 4096
    temperature: float = 0.3


@dataclass
class CompletionResult:
    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: FinishReason = "stop"


@dataclass
class StreamChunk:
    text: str | None = None
    tool_call: ToolCall | None = None
    finish_reason: str | None = None


@runtime_checkable
class LLMProvider(Protocol):
    async def complete(self, params: CompletionParams) -> CompletionResult: ...
    def stream(self, params: CompletionParams) -> AsyncGenerator[StreamChunk, None]: ...
