"""Core type definitions — re-exported from sub-modules."""

from .messages import (
    Message, SystemMessage, UserMessage, AssistantMessage, ToolMessage, ToolCall,
)
from .tools import ToolSchema, ToolDefinition, ToolContext, ToolResult
from .llm import (
    CompletionParams, CompletionResult, StreamChunk, LLMProvider, FinishReason, TokenUsage,
)
from .events import (
    LoopEvent, TextDeltaEvent, ToolCallQueuedEvent, ToolCallStartEvent, ToolCallEndEvent,
    AuditEvent, DoneEvent, EventType, StreamEvent, TERMINAL_EVENT_TYPES, now_ms,
)

__all__ = [
    "Message", "SystemMessage", "UserMessage", "AssistantMessage", "ToolMessage", "ToolCall",
    "ToolSchema", "ToolDefinition", "ToolContext", "ToolResult",
    "CompletionParams", "CompletionResult", "StreamChunk", "LLMProvider", "FinishReason",
    "TokenUsage",
    "LoopEvent", "TextDeltaEvent", "ToolCallQueuedEvent", "ToolCallStartEvent", "ToolCallEndEvent",
    "AuditEvent", "DoneEvent", "EventType", "StreamEvent", "TERMINAL_EVENT_TYPES", "now_ms",
]
