"""In-process event streaming."""

from .bus import EventBus, Subscription

__all__ = ["EventBus", "Subscription"]
