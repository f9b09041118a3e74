"""Session record types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from ..types import now_ms

DEFAULT_TITLE = "Untitled Session"
TITLE_MAX_CHARS = 50


@dataclass
class ConversationTurn:
    role: Literal["user", "assistant"]
    content: str
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content, "timestamp": self.timestamp}


@dataclass
class WorkSummary:
    files_created: list[str] = field(default_factory=list)
    files_modified: list[str] = field(default_factory=list)
    last_action: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.files_created and not self.files_modified

    def record(
        self,
        created: list[str] | None = None,
        modified: list[str] | None = None,
        last_action: str | None = None,
    ) -> None:
        for path in created or []:
            if path not in self.files_created:
                self.files_created.append(path)
        for path in modified or []:
            if path not in self.files_modified and path not in self.files_created:
                self.files_modified.append(path)
        if last_action:
            self.last_action = last_action

    def to_text(self) -> str:
        if self.is_empty:
            return "No previous work in this session."
        lines = []
        if self.files_created:
            lines.append(f"- Files created: {', '.join(self.files_created)}")
        if self.files_modified:
            lines.append(f"- Files modified: {', '.join(self.files_modified)}")
        if self.last_action:
            lines.append(f"- Last action: {self.last_action}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "filesCreated": list(self.files_created),
            "filesModified": list(self.files_modified),
            "lastAction": self.last_action,
        }


@dataclass
class SessionRecord:
    id: str
    title: str = DEFAULT_TITLE
    conversation_history: list[ConversationTurn] = field(default_factory=list)
    environment_ref: str | None = None
    environment_url: str | None = None
    environment_created_at: int | None = None
    is_public: bool = False
    share_token: str | None = None
    work_summary: WorkSummary = field(default_factory=WorkSummary)
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "conversationHistory": [t.to_dict() for t in self.conversation_history],
            "environmentRef": self.environment_ref,
            "environmentUrl": self.environment_url,
            "environmentCreatedAt": self.environment_created_at,
            "isPublic": self.is_public,
            "shareToken": self.share_token,
            "workSummary": self.work_summary.to_dict(),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


def title_from_prompt(prompt: str) -> str:
    text = " ".join(prompt.split())
    if len(text) <= TITLE_MAX_CHARS:
        return text or DEFAULT_TITLE
    return text[: TITLE_MAX_CHARS - 3].rstrip() + "..."
