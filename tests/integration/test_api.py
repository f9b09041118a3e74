"""HTTP surface: invoke, session lookup, sharing and SSE framing."""

import json
import time

import pytest
from fastapi.testclient import TestClient

from codevibe.api import create_app, event_frames
from codevibe.config import BusConfig
from codevibe.coordinator import SessionCoordinator
from codevibe.events import EventBus
from codevibe.providers import ScriptedProvider
from codevibe.sandbox import EnvironmentManager
from codevibe.types import EventType


@pytest.fixture
def coordinator(store, sandbox_service, docs, memory, agent_config):
    return SessionCoordinator(
        provider=ScriptedProvider(["Routing maps URLs to files in the app directory."]),
        bus=EventBus(BusConfig(heartbeat_seconds=0.05)),
        store=store,
        environments=EnvironmentManager(sandbox_service),
        docs=docs,
        memory=memory,
        config=agent_config,
        auditor_provider=ScriptedProvider(["PASS"]),
    )


@pytest.fixture
def client(coordinator):
    with TestClient(create_app(coordinator)) as client:
        yield client


def wait_for_turns(client, session_id, count, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        res = client.get(f"/api/sessions/{session_id}")
        if res.status_code == 200 and len(res.json()["conversationHistory"]) >= count:
            return res.json()
        time.sleep(0.02)
    raise AssertionError(f"session {session_id} never reached {count} turns")


class TestInvoke:
    def test_acknowledges_and_runs(self, client):
        res = client.post("/api/invoke", json={"prompt": "Tell me about routing", "sessionId": "s1"})
        assert res.status_code == 200
        assert res.json() == {"accepted": True, "sessionId": "s1"}

        session = wait_for_turns(client, "s1", 2)
        assert session["title"] == "Tell me about routing"
        assert session["conversationHistory"][1]["content"].startswith("Routing maps URLs")
        assert session["environmentRef"] is None

    def test_generates_session_id(self, client):
        res = client.post("/api/invoke", json={"prompt": "What is ISR?"})
        assert res.status_code == 200
        assert res.json()["sessionId"].startswith("session-")

    @pytest.mark.parametrize("prompt", ["", "   "])
    def test_rejects_blank_prompt(self, client, prompt):
        res = client.post("/api/invoke", json={"prompt": prompt})
        assert res.status_code == 400

    def test_rejects_missing_prompt(self, client):
        assert client.post("/api/invoke", json={"sessionId": "s1"}).status_code == 422


class TestSessions:
    def test_list_newest_first(self, client):
        client.post("/api/invoke", json={"prompt": "What is routing?", "sessionId": "a"})
        wait_for_turns(client, "a", 2)
        time.sleep(0.01)
        client.post("/api/invoke", json={"prompt": "What is caching?", "sessionId": "b"})
        wait_for_turns(client, "b", 2)

        res = client.get("/api/sessions", params={"limit": 10})
        assert res.status_code == 200
        ids = [s["id"] for s in res.json()]
        assert ids[:2] == ["b", "a"]
        assert res.json()[0]["turns"] == 2
        assert res.json()[0]["isPublic"] is False

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/nope").status_code == 404

    def test_share_and_lookup(self, client):
        client.post("/api/invoke", json={"prompt": "Explain layouts", "sessionId": "s1"})
        wait_for_turns(client, "s1", 2)

        res = client.post("/api/sessions/s1/share")
        assert res.status_code == 200
        body = res.json()
        assert body["sessionId"] == "s1"
        assert body["isPublic"] is True
        token = body["shareToken"]

        again = client.post("/api/sessions/s1/share").json()
        assert again["shareToken"] == token

        shared = client.get(f"/api/share/{token}")
        assert shared.status_code == 200
        assert shared.json()["id"] == "s1"
        assert shared.json()["isPublic"] is True

    def test_share_unknown_session(self, client):
        assert client.post("/api/sessions/ghost/share").status_code == 404

    def test_unknown_share_token(self, client):
        assert client.get("/api/share/not-a-token").status_code == 404


class TestLifespan:
    def test_shutdown_closes_bus(self, coordinator):
        with TestClient(create_app(coordinator)):
            pass
        assert coordinator.bus.closed


class TestEventFrames:
    async def test_frames_carry_type_payload_and_sequence(self):
        bus = EventBus(BusConfig(heartbeat_seconds=10))
        sub = bus.subscribe("s1")
        await bus.publish("s1", EventType.PARTIAL, {"fragment": "Hi", "cumulative": "Hi"})

        frames = event_frames(sub)
        frame = await anext(frames)
        assert frame["event"] == "partial"
        assert frame["id"] == "1"
        data = json.loads(frame["data"])
        assert data["sessionId"] == "s1"
        assert data["payload"] == {"fragment": "Hi", "cumulative": "Hi"}

        await frames.aclose()
        assert sub.closed
        assert bus.subscriber_count("s1") == 0
        await bus.shutdown()

    async def test_heartbeat_frames_have_no_id(self):
        bus = EventBus(BusConfig(heartbeat_seconds=0.01))
        sub = bus.subscribe("s1")
        frames = event_frames(sub)
        frame = await anext(frames)
        assert frame["event"] == "heartbeat"
        assert "id" not in frame
        await frames.aclose()
        await bus.shutdown()
