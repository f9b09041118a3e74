"""Tool types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ToolSchema(Protocol):
    def parse(self, raw: Any) -> Any: ...
    def to_json_schema(self) -> dict: ...


@dataclass
class ToolDefinition:
    name: str
    description: str
    parameters: ToolSchema
    execute: Any  # (input, ctx) -> Awaitable[Any]


@dataclass
class ToolResult:
    tool_call_id: str
    tool_name: str
    success: bool
    content: str = ""
    duration_ms: int = 0


@dataclass
class ToolContext:
    session_id: str
    sandbox_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
