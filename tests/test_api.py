"""Tests for the FastAPI surface using scripted agents."""

import pytest
from fastapi.testclient import TestClient

from parley.agent.agent import Agent
from parley.api.app import create_app


@pytest.fixture
def client(make_model, scheduler):
    alice = Agent(
        "Alice",
        "Coordinator",
        ["planning"],
        make_model(['Let me ask Bob.\nAGENT:c1:Bob("Status?")', "Bob is fine.\nTOOL:done"]),
        tools=[],
        aware_of=["Bob"],
        scheduler=scheduler,
    )
    Agent("Bob", "Worker", [], make_model(["All fine.\nTOOL:done"]), tools=[], scheduler=scheduler)

    with TestClient(create_app(scheduler, alice)) as test_client:
        yield test_client


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_list_agents(client: TestClient) -> None:
    response = client.get("/agents")
    assert response.status_code == 200
    assert response.json() == [
        {
            "name": "Alice",
            "bio": "Coordinator",
            "skills": ["planning"],
            "model": "scripted:test",
            "primary": True,
        },
        {"name": "Bob", "bio": "Worker", "skills": [], "model": "scripted:test", "primary": False},
    ]


def test_prompt_collects_every_agent_output(client: TestClient) -> None:
    response = client.post("/prompt", json={"message": "How is Bob?"})
    assert response.status_code == 200

    data = response.json()
    assert data["agent"] == "Alice"
    assert data["handled"] == 3
    assert [o["agent"] for o in data["outputs"]] == ["Alice", "Bob", "Alice"]
    first = data["outputs"][0]["content"]
    assert first == 'Let me ask Bob.\n\n[Delegating to agent Bob: "Status?"]'
    assert data["outputs"][-1]["content"] == "Bob is fine.\n\n[Task completed]"


def test_prompt_for_named_agent(client: TestClient) -> None:
    response = client.post("/prompt", json={"message": "Report", "agent": "Bob"})
    assert response.status_code == 200
    assert response.json()["outputs"] == [
        {"agent": "Bob", "content": "All fine.\n\n[Task completed]"}
    ]


def test_prompt_for_unknown_agent(client: TestClient) -> None:
    response = client.post("/prompt", json={"message": "hi", "agent": "Zed"})
    assert response.status_code == 404
    assert response.json()["detail"] == "Agent not found: Zed"


def test_prompt_requires_message(client: TestClient) -> None:
    assert client.post("/prompt", json={"message": ""}).status_code == 422
