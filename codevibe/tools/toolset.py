"""
Per-run tool sets.

The environment-independent tier is always present; the environment-bound
tier is added only when the run holds a live environment handle.
"""

from __future__ import annotations

from ..sandbox import SandboxHandle, SandboxService
from . import ToolRegistry
from .docs import DocsLookup, docs_tool
from .memory import SessionMemoryStore, memory_tools
from .sandbox import sandbox_tools


def build_toolset(
    docs: DocsLookup,
    memory: SessionMemoryStore,
    service: SandboxService | None = None,
    handle: SandboxHandle | None = None,
) -> ToolRegistry:
    registry = ToolRegistry([docs_tool(docs), *memory_tools(memory)])
    if service is not None and handle is not None:
        for tool in sandbox_tools(service, handle.id):
            registry.register(tool)
    return registry
