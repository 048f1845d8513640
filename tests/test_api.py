"""Tests for the HTTP API, with the planner replaced by a scripted stub."""

from typing import Any, Iterable, Sequence

import pytest
from fastapi.testclient import TestClient

from ponder.api import app as app_module
from ponder.core.protocol import parse_decision
from ponder.core.schema import (
    Decision,
    Turn,
)


class ScriptedPlanner:
    """Replays canned planner replies."""

    def __init__(self, *replies: str):
        self.replies = list(replies)

    async def get_completion(self, history: Sequence[Turn], tools: Iterable[Any]) -> Decision:
        return parse_decision(self.replies.pop(0) if len(self.replies) > 1 else self.replies[0])


@pytest.fixture(name="client")
def fixture_client() -> TestClient:
    return TestClient(app_module.app)


def test_health(client: TestClient) -> None:
    """Liveness probe answers ok."""

    assert client.get("/health").json() == {"status": "ok"}


def test_tools_listing(client: TestClient) -> None:
    """The reference toolset is described without implementations."""

    tools = client.get("/tools").json()
    names = [t["name"] for t in tools]
    assert "calculator" in names
    assert set(tools[0]) == {"name", "description", "usage"}


def test_agent_run(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    """A full run returns the final reply, its trace and the wire-shaped history."""

    planner = ScriptedPlanner(
        '{"tool":"calculator","arguments":{"expression":"2+2"}}', '{"final":"4"}'
    )
    monkeypatch.setattr(app_module, "load_planner", lambda name=None: planner)

    body = client.post("/agent", json={"message": "2+2"}).json()

    assert body["reply"] == "4"
    assert body["finished"] is True
    assert body["turns_used"] == 2
    assert [t["role"] for t in body["history"]] == ["user", "assistant", "tool", "assistant"]
    assert "Result: 4" in body["history"][2]["content"]
    assert any(line.startswith("[act] Executing calculator") for line in body["trace"])


def test_agent_without_credentials(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    """Setup errors surface as 503."""

    def refuse(name=None):
        raise ValueError("API key is required.")

    monkeypatch.setattr(app_module, "load_planner", refuse)

    response = client.post("/agent", json={"message": "hi"})
    assert response.status_code == 503
    assert response.json()["detail"] == "API key is required."


def test_agent_rejects_empty_message(client: TestClient) -> None:
    """Blank requests fail validation."""

    assert client.post("/agent", json={"message": ""}).status_code == 422
