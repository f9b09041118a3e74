"""
Shared fixtures: scripted completion providers, a local sandbox rooted in
tmp_path, a fresh event bus and an offline documentation lookup.
"""

import json
import uuid

import pytest

from codevibe.config import AgentConfig, BusConfig, SandboxConfig
from codevibe.coordinator import SessionCoordinator
from codevibe.events import EventBus
from codevibe.providers import ScriptedProvider
from codevibe.sandbox import EnvironmentManager, LocalSandboxService
from codevibe.session import InMemorySessionStore
from codevibe.tools.docs import DocsLookup
from codevibe.tools.memory import SessionMemoryStore
from codevibe.types import CompletionResult, ToolCall, ToolContext

DOCS_HTML = """
<html><head><style>body { color: red; }</style><script>alert(1)</script></head>
<body>
<h1>Middleware</h1>
<p>Middleware allows you to run code before a request is completed.</p>
<p>Use the matcher config to filter paths &amp; routes.</p>
</body></html>
"""


def tool_call_result(name, reply="", **arguments):
    """A completion that requests one tool call, optionally with ``reply`` text."""
    return CompletionResult(
        content=reply,
        tool_calls=[
            ToolCall(id=f"call_{uuid.uuid4().hex[:8]}", name=name, arguments=json.dumps(arguments))
        ],
        finish_reason="tool_calls",
    )


@pytest.fixture
def make_tool_call():
    return tool_call_result


@pytest.fixture
def sandbox_config(tmp_path):
    return SandboxConfig(root_dir=tmp_path / "sandboxes", ttl_seconds=3600)


@pytest.fixture
def sandbox_service(sandbox_config):
    return LocalSandboxService(sandbox_config)


@pytest.fixture
async def sandbox(sandbox_service):
    return await sandbox_service.create()


@pytest.fixture
def tool_ctx(sandbox):
    return ToolContext(session_id="session-test", sandbox_id=sandbox.id)


@pytest.fixture
async def bus():
    bus = EventBus(BusConfig(heartbeat_seconds=0.05, subscriber_queue_size=64))
    yield bus
    await bus.shutdown()


@pytest.fixture
def docs_fetches():
    return []


@pytest.fixture
def docs(docs_fetches):
    async def fetch(url):
        docs_fetches.append(url)
        return DOCS_HTML

    return DocsLookup(fetcher=fetch)


@pytest.fixture
def memory():
    return SessionMemoryStore()


@pytest.fixture
def store():
    return InMemorySessionStore(history_limit=40)


@pytest.fixture
def agent_config():
    return AgentConfig(max_audit_attempts=3, max_steps=30, tool_timeout_seconds=5)


@pytest.fixture
def make_coordinator(bus, store, sandbox_service, docs, memory, agent_config):
    def factory(responses, audit_responses=("PASS",), service=None):
        return SessionCoordinator(
            provider=ScriptedProvider(responses),
            bus=bus,
            store=store,
            environments=EnvironmentManager(service or sandbox_service),
            docs=docs,
            memory=memory,
            config=agent_config,
            auditor_provider=ScriptedProvider(audit_responses),
        )

    return factory
