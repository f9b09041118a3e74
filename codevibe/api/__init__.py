"""HTTP boundary: FastAPI app with SSE streaming."""

from .app import build_coordinator, create_app, event_frames

__all__ = ["build_coordinator", "create_app", "event_frames"]
