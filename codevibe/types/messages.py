"""Message types."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: str


@dataclass
class SystemMessage:
    content: str
    role: str = "system"


@dataclass
class UserMessage:
    content: str = ""
    role: str = "user"


@dataclass
class AssistantMessage:
    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    audit: bool = False  # self-review verdict, never surfaced as the answer
    role: str = "assistant"


@dataclass
class ToolMessage:
    content: str
    tool_call_id: str
    is_error: bool = False
    role: str = "tool"


Message = SystemMessage | UserMessage | AssistantMessage | ToolMessage
