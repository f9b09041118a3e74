"""
codevibe: a session-scoped coding agent engine.

Classifies each prompt, acquires an execution environment when the task
needs one, drives an agent/tools/audit loop against a completion service
and streams every step to any number of observers of the session.
"""

from .agent import ReasoningLoop
from .config import AgentConfig, BusConfig, DocsConfig, LLMConfig, SandboxConfig, Settings
from .coordinator import Acknowledgment, RunResult, SessionCoordinator
from .errors import CodevibeError
from .events import EventBus, Subscription
from .intent import IntentDecision, classify
from .sandbox import EnvironmentManager, LocalSandboxService
from .session import InMemorySessionStore
from .tools import ToolRegistry, define_tool

__version__ = "0.1.0"

__all__ = [
    "ReasoningLoop",
    "AgentConfig", "BusConfig", "DocsConfig", "LLMConfig", "SandboxConfig", "Settings",
    "Acknowledgment", "RunResult", "SessionCoordinator",
    "CodevibeError",
    "EventBus", "Subscription",
    "IntentDecision", "classify",
    "EnvironmentManager", "LocalSandboxService",
    "InMemorySessionStore",
    "ToolRegistry", "define_tool",
]
