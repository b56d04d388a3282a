"""Tests for the FastAPI front end."""

from __future__ import annotations

import asyncio
import threading
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from pr_agent.agent_modules.data_types import VerifyFailedResult
from pr_agent.server import app, get_config


@pytest.fixture
def client(agent_config):
    app.dependency_overrides[get_config] = lambda: agent_config
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_index_describes_service(client):
    response = client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["service"] == "PR Agent API"
    assert body["version"] == "1.0.0"
    assert "POST /run" in body["endpoints"]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


@pytest.mark.parametrize(
    "payload,field",
    [
        ({"goal": "fix"}, "repo"),
        ({"repo": "", "goal": "fix"}, "repo"),
        ({"repo": 5, "goal": "fix"}, "repo"),
        ({"repo": "/src/repo"}, "goal"),
        ({"repo": "/src/repo", "goal": ["fix"]}, "goal"),
    ],
)
def test_run_rejects_invalid_fields(client, payload, field):
    with patch("pr_agent.server.PRAgent") as mock_agent:
        response = client.post("/run", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": f'Missing or invalid "{field}" field'}
    mock_agent.assert_not_called()


def test_run_rejects_malformed_json(client):
    response = client.post("/run", content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid JSON")


def test_run_rejects_non_object_body(client):
    response = client.post("/run", json=["repo", "goal"])

    assert response.status_code == 400


def test_run_returns_structured_result(client, agent_config):
    result = VerifyFailedResult(output="still failing", work_dir="/tmp/w")

    with patch("pr_agent.server.PRAgent") as mock_agent:
        mock_agent.return_value.run = AsyncMock(return_value=result)
        response = client.post("/run", json={"repo": "/src/repo", "goal": "fix utils/date.js"})

    assert response.status_code == 200
    assert response.json() == {"status": "verify_failed", "output": "still failing", "workDir": "/tmp/w"}
    assert mock_agent.call_args.args == (agent_config,)
    mock_agent.return_value.run.assert_awaited_once_with("/src/repo", "fix utils/date.js")


def test_cors_preflight(client):
    response = client.options(
        "/run",
        headers={
            "Origin": "https://tools.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_health_answers_while_run_in_flight(agent_config):
    started = threading.Event()
    release = threading.Event()
    waits = []

    async def blocking_run(repo, goal):
        # Stands in for git and npm subprocess calls that hold the thread.
        started.set()
        waits.append(release.wait(5))
        return VerifyFailedResult(output="still failing", work_dir="/tmp/w")

    app.dependency_overrides[get_config] = lambda: agent_config
    try:
        with patch("pr_agent.server.PRAgent") as mock_agent:
            mock_agent.return_value.run = blocking_run
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
                run_request = asyncio.create_task(client.post("/run", json={"repo": "/src/repo", "goal": "fix"}))
                assert await asyncio.to_thread(started.wait, 5)

                health = await client.get("/health")
                release.set()
                response = await run_request
    finally:
        release.set()
        app.dependency_overrides.clear()

    assert health.json() == {"status": "healthy"}
    assert waits == [True]
    assert response.json()["status"] == "verify_failed"
