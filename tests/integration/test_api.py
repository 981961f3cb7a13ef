"""
Integration tests for API endpoints using FastAPI TestClient.

The search endpoint is exercised with a stubbed HomeSearchAgent on app.state;
no model or backend calls are made.
"""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from homefinder.agents.errors import MaxTurnsExceededError, UnknownToolError
from homefinder.agents.state import ToolInvocation


@pytest.fixture
def agent(client: TestClient, sample_home, monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Stub agent installed on app.state for the duration of a test."""
    stub = MagicMock()
    stub.run = AsyncMock(
        return_value=(
            [sample_home],
            [
                ToolInvocation(
                    tool="search_homes",
                    arguments={"query": "homes", "latitude": Decimal("28.5384")},
                    status="ok",
                    detail="1 homes",
                )
            ],
        )
    )
    monkeypatch.setattr(client.app.state, "agent", stub, raising=False)
    return stub


class TestRootEndpoint:
    """Tests for GET /."""

    def test_returns_api_info(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Home Finder API"
        assert data["version"] == "1.0.0"
        assert "docs" in data


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_returns_healthy(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestSearchEndpoint:
    """Tests for POST /api/v1/search."""

    def test_returns_homes_and_invocations(self, client: TestClient, agent: MagicMock):
        response = client.post("/api/v1/search", json={"query": "  homes near Orlando  "})

        assert response.status_code == 200
        data = response.json()
        assert data["homes"][0]["title"] == "3BR Ranch in College Park"
        assert data["homes"][0]["squareFootage"] == 1850
        assert data["homes"][0]["bathrooms"] == 2.5
        assert data["tool_invocations"] == [
            {
                "tool": "search_homes",
                "arguments": {"query": "homes", "latitude": 28.5384},
                "status": "ok",
                "detail": "1 homes",
            }
        ]
        agent.run.assert_awaited_once_with("homes near Orlando")

    def test_decimals_keep_every_digit(self, client: TestClient, agent: MagicMock):
        agent.run.return_value = (
            [],
            [
                ToolInvocation(
                    tool="geocode_location",
                    arguments={"latitude": Decimal("28.53841234567891234")},
                    status="ok",
                )
            ],
        )

        response = client.post("/api/v1/search", json={"query": "homes"})

        assert response.status_code == 200
        assert '"latitude":28.53841234567891234' in response.text

    def test_blank_query_is_rejected(self, client: TestClient, agent: MagicMock):
        response = client.post("/api/v1/search", json={"query": "   "})
        assert response.status_code == 422
        agent.run.assert_not_awaited()

    def test_missing_query_is_rejected(self, client: TestClient, agent: MagicMock):
        response = client.post("/api/v1/search", json={})
        assert response.status_code == 422

    def test_orchestration_error_returns_502(self, client: TestClient, agent: MagicMock):
        log = [ToolInvocation(tool="book_viewing", status="error", detail="unknown tool")]
        agent.run.side_effect = UnknownToolError("Unknown tool: book_viewing", log)

        response = client.post("/api/v1/search", json={"query": "homes"})

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["code"] == "UnknownToolError"
        assert detail["message"] == "Unknown tool: book_viewing"
        assert detail["tool_invocations"][0]["tool"] == "book_viewing"

    def test_max_turns_returns_502(self, client: TestClient, agent: MagicMock):
        agent.run.side_effect = MaxTurnsExceededError("Model still requesting tools after 8 turns.")

        response = client.post("/api/v1/search", json={"query": "homes"})

        assert response.status_code == 502
        assert response.json()["detail"]["code"] == "MaxTurnsExceededError"

    def test_no_agent_returns_503(self, client: TestClient, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(client.app.state, "agent", None, raising=False)

        response = client.post("/api/v1/search", json={"query": "homes"})

        assert response.status_code == 503


class TestLifespan:
    """Startup builds the agent and its services from settings."""

    def test_startup_installs_agent(self, client: TestClient):
        with TestClient(client.app) as started:
            response = started.get("/api/v1/search/health")

        assert response.status_code == 200
        assert response.json() == {
            "agent_ready": True,
            "geocoding_configured": True,
            "search_configured": True,
        }


class TestRequestContextMiddleware:
    """Tests for X-Request-ID header injected by RequestContextMiddleware."""

    def test_request_id_header_present(self, client: TestClient):
        response = client.get("/health")
        assert "x-request-id" in response.headers

    def test_request_id_is_valid_uuid(self, client: TestClient):
        response = client.get("/health")
        uuid.UUID(response.headers["x-request-id"])

    def test_caller_request_id_is_echoed(self, client: TestClient):
        response = client.get("/health", headers={"X-Request-ID": "trace-abc"})
        assert response.headers["x-request-id"] == "trace-abc"

    def test_request_ids_differ_between_requests(self, client: TestClient):
        first = client.get("/health").headers["x-request-id"]
        second = client.get("/health").headers["x-request-id"]
        assert first != second
