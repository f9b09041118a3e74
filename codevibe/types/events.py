"""Event types.

Two families live here: the loop events yielded by the reasoning loop while
it runs, and the stream frames the event bus fans out to observers.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# -- Loop events --


@dataclass
class TextDeltaEvent:
    text: str
    type: str = "text_delta"


@dataclass
class ToolCallQueuedEvent:
    tool_call_id: str
    name: str
    args: dict[str, Any] | None = None
    type: str = "tool_call_queued"


@dataclass
class ToolCallStartEvent:
    tool_call_id: str
    name: str
    args: dict[str, Any] | None = None
    type: str = "tool_call_start"


@dataclass
class ToolCallEndEvent:
    tool_call_id: str
    name: str
    result: str
    success: bool = True
    args: dict[str, Any] | None = None
    duration_ms: int = 0
    type: str = "tool_call_end"


@dataclass
class AuditEvent:
    attempt: int
    verdict: str  # "PASS" | "RETRY"
    forced: bool = False
    reason: str = ""
    type: str = "audit"


@dataclass
class DoneEvent:
    content: str
    steps: int = 0
    audits: int = 0
    degraded: bool = False
    duration_ms: int = 0
    type: str = "done"


LoopEvent = (
    TextDeltaEvent | ToolCallQueuedEvent | ToolCallStartEvent | ToolCallEndEvent | AuditEvent | DoneEvent
)


# -- Stream frames --


class EventType(str, Enum):
    STATUS = "status"
    PARTIAL = "partial"
    TOOL = "tool"
    SANDBOX = "sandbox"
    COMPLETE = "complete"
    ERROR = "error"
    HEARTBEAT = "heartbeat"


TERMINAL_EVENT_TYPES = frozenset({EventType.COMPLETE, EventType.ERROR})


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class StreamEvent:
    sequence: int
    type: EventType
    session_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=now_ms)

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENT_TYPES

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "type": self.type.value,
            "sessionId": self.session_id,
            "timestamp": self.timestamp,
            "payload": self.payload,
        }
