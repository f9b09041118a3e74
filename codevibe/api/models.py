"""Request/response payloads for the HTTP boundary."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class InvokeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    session_id: str | None = Field(None, alias="sessionId")
    environment_ref: str | None = Field(None, alias="environmentRef")


class InvokeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    accepted: bool
    session_id: str = Field(..., alias="sessionId")


class ShareResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    share_token: str = Field(..., alias="shareToken")
    is_public: bool = Field(True, alias="isPublic")


class SessionSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    is_public: bool = Field(False, alias="isPublic")
    environment_url: str | None = Field(None, alias="environmentUrl")
    updated_at: int = Field(..., alias="updatedAt")
    turns: int = 0

    @classmethod
    def from_record(cls, record: Any) -> SessionSummary:
        return cls(
            id=record.id,
            title=record.title,
            is_public=record.is_public,
            environment_url=record.environment_url,
            updated_at=record.updated_at,
            turns=len(record.conversation_history),
        )
