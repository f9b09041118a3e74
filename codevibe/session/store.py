"""
Session store.

``SessionStore`` is the seam to whatever persists conversations; the
in-memory implementation backs tests and single-process deployments.
"""

from __future__ import annotations

import secrets
from typing import Protocol, runtime_checkable

from ..infra.logging import get_logger
from ..types import now_ms
from .models import DEFAULT_TITLE, ConversationTurn, SessionRecord, WorkSummary, title_from_prompt

logger = get_logger(__name__)


@runtime_checkable
class SessionStore(Protocol):
    async def get(self, session_id: str) -> SessionRecord | None: ...
    async def get_or_create(self, session_id: str) -> SessionRecord: ...
    async def append_turns(self, session_id: str, turns: list[ConversationTurn]) -> SessionRecord: ...
    async def bind_environment(
        self, session_id: str, ref: str, url: str, created_at: int | None = None
    ) -> SessionRecord: ...
    async def update_work_summary(self, session_id: str, summary: WorkSummary) -> None: ...
    async def share(self, session_id: str) -> SessionRecord: ...
    async def get_by_share_token(self, token: str) -> SessionRecord | None: ...
    async def list_sessions(self, limit: int = 10) -> list[SessionRecord]: ...


class InMemorySessionStore:
    def __init__(self, history_limit: int = 40) -> None:
        self.history_limit = history_limit
        self._records: dict[str, SessionRecord] = {}

    async def get(self, session_id: str) -> SessionRecord | None:
        return self._records.get(session_id)

    async def get_or_create(self, session_id: str) -> SessionRecord:
        record = self._records.get(session_id)
        if record is None:
            record = SessionRecord(id=session_id)
            self._records[session_id] = record
            logger.debug("session.created", session_id=session_id)
        return record

    async def append_turns(self, session_id: str, turns: list[ConversationTurn]) -> SessionRecord:
        """Append turns, keeping only the newest ``history_limit``.

        The first user turn of a fresh session replaces the default title.
        """
        record = await self.get_or_create(session_id)
        if record.title == DEFAULT_TITLE:
            first_user = next((t for t in turns if t.role == "user"), None)
            if first_user is not None and not record.conversation_history:
                record.title = title_from_prompt(first_user.content)
        record.conversation_history.extend(turns)
        if len(record.conversation_history) > self.history_limit:
            record.conversation_history = record.conversation_history[-self.history_limit :]
        record.updated_at = now_ms()
        return record

    async def bind_environment(
        self, session_id: str, ref: str, url: str, created_at: int | None = None
    ) -> SessionRecord:
        record = await self.get_or_create(session_id)
        record.environment_ref = ref
        record.environment_url = url
        record.environment_created_at = created_at
        record.updated_at = now_ms()
        return record

    async def update_work_summary(self, session_id: str, summary: WorkSummary) -> None:
        record = await self.get_or_create(session_id)
        record.work_summary = summary
        record.updated_at = now_ms()

    async def share(self, session_id: str) -> SessionRecord:
        record = self._records.get(session_id)
        if record is None:
            raise KeyError(session_id)
        record.is_public = True
        if not record.share_token:
            record.share_token = secrets.token_urlsafe(16)
        record.updated_at = now_ms()
        return record

    async def get_by_share_token(self, token: str) -> SessionRecord | None:
        for record in self._records.values():
            if record.is_public and record.share_token == token:
                return record
        return None

    async def list_sessions(self, limit: int = 10) -> list[SessionRecord]:
        records = sorted(self._records.values(), key=lambda r: r.updated_at, reverse=True)
        return records[:limit]
