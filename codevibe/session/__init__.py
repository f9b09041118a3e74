"""Session records and stores."""

from .models import (
    DEFAULT_TITLE,
    ConversationTurn,
    SessionRecord,
    WorkSummary,
    title_from_prompt,
)
from .store import InMemorySessionStore, SessionStore

__all__ = [
    "DEFAULT_TITLE", "ConversationTurn", "SessionRecord", "WorkSummary", "title_from_prompt",
    "InMemorySessionStore", "SessionStore",
]
