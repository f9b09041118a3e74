"""Session memory — per-session key/value records and the tools exposing them."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ..types import ToolContext, ToolDefinition
from .schema import PydanticSchema

Category = Literal["preferences", "context", "tasks"]
CATEGORIES: tuple[str, ...] = ("preferences", "context", "tasks")


class PreferencesMemory(BaseModel):
    model_config = ConfigDict(extra="forbid")

    language: str | None = None
    code_style: str | None = None
    framework: str | None = None
    preferences: list[str] | None = None


class ContextMemory(BaseModel):
    model_config = ConfigDict(extra="forbid")

    topics: list[str] | None = None
    files: list[str] | None = None
    last_activity: str | None = None
    project_context: str | None = None


class TasksMemory(BaseModel):
    model_config = ConfigDict(extra="forbid")

    completed_tasks: list[str] | None = None
    pending_tasks: list[str] | None = None
    errors: list[str] | None = None


_CATEGORY_MODELS: dict[str, type[BaseModel]] = {
    "preferences": PreferencesMemory,
    "context": ContextMemory,
    "tasks": TasksMemory,
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionMemoryStore:
    """In-process memory keyed by (session id, category)."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, dict[str, Any]]] = {}

    async def get(self, session_id: str, category: str) -> dict[str, Any] | None:
        return self._records.get(session_id, {}).get(category)

    async def save(self, session_id: str, category: str, data: dict[str, Any]) -> dict[str, Any]:
        """Validate ``data`` for its category and merge it into the stored record."""
        model = _CATEGORY_MODELS.get(category)
        if model is None:
            raise ValueError(f"Unknown memory category: {category}")
        validated = model.model_validate(data).model_dump(exclude_none=True)

        session = self._records.setdefault(session_id, {})
        existing = session.get(category)
        now = _now_iso()
        if existing:
            merged = {**existing, **validated, "updated_at": now}
        else:
            merged = {**validated, "created_at": now, "updated_at": now}
        session[category] = merged
        return merged

    async def search(self, session_id: str, query: str, limit: int = 5) -> list[dict[str, Any]]:
        words = [w for w in query.lower().split() if w]
        results = []
        for category, value in self._records.get(session_id, {}).items():
            haystack = json.dumps(value).lower()
            hits = sum(1 for w in words if w in haystack)
            if hits:
                results.append({"key": category, "data": value, "relevance": hits / len(words)})
        results.sort(key=lambda r: r["relevance"], reverse=True)
        return results[:limit]

    async def clear(self, session_id: str) -> None:
        self._records.pop(session_id, None)


class GetMemoryParams(BaseModel):
    category: Category = Field(..., description="preferences, context, or tasks")


class SaveMemoryParams(BaseModel):
    category: Category = Field(..., description="The category of memory to save")
    data: dict[str, Any] = Field(..., description="Key/value pairs to merge into the record")


class SearchMemoryParams(BaseModel):
    query: str = Field(..., min_length=1, description="Terms to look for in stored memories")


def memory_tools(store: SessionMemoryStore) -> list[ToolDefinition]:
    async def _get(params: GetMemoryParams, ctx: ToolContext) -> str:
        record = await store.get(ctx.session_id, params.category)
        if not record:
            return f"No {params.category} memory found for this session."
        return json.dumps(record, indent=2)

    async def _save(params: SaveMemoryParams, ctx: ToolContext) -> str:
        await store.save(ctx.session_id, params.category, params.data)
        return f"Successfully saved {params.category} memory for session {ctx.session_id}."

    async def _search(params: SearchMemoryParams, ctx: ToolContext) -> str:
        results = await store.search(ctx.session_id, params.query)
        if not results:
            return f'No memories found matching "{params.query}".'
        return json.dumps(results, indent=2)

    return [
        ToolDefinition(
            name="get_session_memory",
            description=(
                "Retrieve stored information about the current session: user preferences, "
                "conversation context, or task history."
            ),
            parameters=PydanticSchema(GetMemoryParams),
            execute=_get,
        ),
        ToolDefinition(
            name="save_session_memory",
            description=(
                "Save information about the current session for future reference, such as "
                "preferences, topics, files being worked on, or completed tasks."
            ),
            parameters=PydanticSchema(SaveMemoryParams),
            execute=_save,
        ),
        ToolDefinition(
            name="search_session_memories",
            description="Search through session memories to recall details from past interactions.",
            parameters=PydanticSchema(SearchMemoryParams),
            execute=_search,
        ),
    ]
