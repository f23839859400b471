# FILE: tests/test_ai_router.py
"""
Tests for app/llm/router.py
HTTP contract of POST /api/ai and GET /api/ai/providers.
"""

import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.llm.router import MISSING_PARAMS_ERROR, get_orchestrator, router
from app.llm.schemas import AIResponse, ColumnType, ResponseType
from app.llm.waterfall import WaterfallOrchestrator
from app.providers.registry import build_providers


@pytest.fixture
def app():
    """Create a test FastAPI application."""
    app = FastAPI()
    app.include_router(router)
    return app


@pytest.fixture
def mock_orchestrator():
    orchestrator = Mock(spec=WaterfallOrchestrator)
    orchestrator.providers = ()
    orchestrator.run = AsyncMock(
        return_value=AIResponse(
            success=True,
            type=ResponseType.FORMULA,
            code="=SUM(A:A)",
            explanation="Sums column A",
            provider="Groq",
        )
    )
    return orchestrator


@pytest.fixture
def client(app, mock_orchestrator):
    app.dependency_overrides[get_orchestrator] = lambda: mock_orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestValidation:
    """400 responses never reach the orchestrator."""

    def test_missing_query(self, client, mock_orchestrator):
        response = client.post("/api/ai", json={"headers": ["A", "B"]})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "type": "error",
            "error": "Missing required parameters: query and headers are required",
        }
        mock_orchestrator.run.assert_not_called()

    def test_missing_headers(self, client, mock_orchestrator):
        response = client.post("/api/ai", json={"query": "sum column A"})
        assert response.status_code == 400
        assert response.json()["error"] == MISSING_PARAMS_ERROR
        mock_orchestrator.run.assert_not_called()

    def test_empty_headers(self, client, mock_orchestrator):
        response = client.post("/api/ai", json={"query": "sum", "headers": []})
        assert response.status_code == 400
        mock_orchestrator.run.assert_not_called()

    def test_blank_query(self, client, mock_orchestrator):
        response = client.post("/api/ai", json={"query": "   ", "headers": ["A"]})
        assert response.status_code == 400
        mock_orchestrator.run.assert_not_called()

    def test_malformed_json(self, client, mock_orchestrator):
        response = client.post(
            "/api/ai", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"].startswith("Invalid request body")
        mock_orchestrator.run.assert_not_called()

    def test_wrong_field_type(self, client, mock_orchestrator):
        response = client.post("/api/ai", json={"query": "sum", "headers": "A,B"})
        assert response.status_code == 400
        mock_orchestrator.run.assert_not_called()


class TestSuccessPath:

    def test_returns_orchestrator_response(self, client, mock_orchestrator):
        response = client.post("/api/ai", json={"query": "sum column A", "headers": ["A", "B"]})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "type": "formula",
            "code": "=SUM(A:A)",
            "explanation": "Sums column A",
            "provider": "Groq",
        }

    def test_no_sample_row(self, client, mock_orchestrator):
        client.post("/api/ai", json={"query": "sum column A", "headers": ["A", "B"]})

        query, schema = mock_orchestrator.run.call_args.args
        assert query == "sum column A"
        assert schema.column_types == {"A": ColumnType.STRING, "B": ColumnType.STRING}
        assert schema.sample_data is None
        assert schema.row_count is None

    def test_rows_reduced_to_first_row_types_and_count(self, client, mock_orchestrator):
        rows = [
            [100, "Acme Corp", "2024-01-15"],
            [250, "Globex", "2024-02-01"],
            [75, "Initech", "2024-03-09"],
        ]
        client.post("/api/ai", json={"query": "total", "headers": ["Amount", "Client", "Date"], "rows": rows})

        _, schema = mock_orchestrator.run.call_args.args
        assert schema.sample_data == [[ColumnType.NUMBER, ColumnType.STRING, ColumnType.DATE]]
        assert schema.row_count == 3
        wire = str(schema.to_prompt_dict())
        for value in ("Acme Corp", "Globex", "Initech", "250"):
            assert value not in wire

    def test_first_row_variant(self, client, mock_orchestrator):
        client.post("/api/ai", json={"query": "total", "headers": ["A", "B"], "firstRow": [True, None]})

        _, schema = mock_orchestrator.run.call_args.args
        assert schema.column_types == {"A": ColumnType.BOOLEAN, "B": ColumnType.NULL}
        assert schema.row_count is None

    def test_empty_rows_falls_back_to_first_row(self, client, mock_orchestrator):
        client.post("/api/ai", json={"query": "q", "headers": ["A"], "rows": [], "firstRow": [1]})

        _, schema = mock_orchestrator.run.call_args.args
        assert schema.column_types == {"A": ColumnType.NUMBER}
        assert schema.row_count == 0

    def test_orchestrator_failure_is_http_200(self, client, mock_orchestrator):
        mock_orchestrator.run.return_value = AIResponse.failure("All AI providers failed. Groq: boom")
        response = client.post("/api/ai", json={"query": "q", "headers": ["A"]})

        assert response.status_code == 200
        assert response.json() == {
            "success": False,
            "type": "error",
            "error": "All AI providers failed. Groq: boom",
        }


class TestUnexpectedErrors:

    def test_exception_becomes_500(self, client, mock_orchestrator):
        mock_orchestrator.run.side_effect = RuntimeError("database on fire")
        response = client.post("/api/ai", json={"query": "q", "headers": ["A"]})

        assert response.status_code == 500
        assert response.json() == {"success": False, "type": "error", "error": "database on fire"}

    def test_exception_without_message(self, client, mock_orchestrator):
        mock_orchestrator.run.side_effect = RuntimeError()
        response = client.post("/api/ai", json={"query": "q", "headers": ["A"]})

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"


class TestEndToEndWithoutKeys:
    """Real orchestrator + real adapters, no credentials anywhere."""

    def test_all_providers_not_configured(self, app):
        orchestrator = WaterfallOrchestrator(build_providers(env={}))
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        try:
            response = TestClient(app).post(
                "/api/ai", json={"query": "sum column A", "headers": ["A", "B"]}
            )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["type"] == "error"
        assert "provider" not in body
        for name in ("Groq", "DeepSeek", "X.AI", "Cohere"):
            assert f"{name}: {name} API key not configured" in body["error"]


class TestProvidersEndpoint:

    def test_lists_order_and_configuration(self, app):
        orchestrator = WaterfallOrchestrator(build_providers(env={"XAI_API_KEY": "xai-key"}))
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        try:
            response = TestClient(app).get("/api/ai/providers")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        data = response.json()
        assert [p["name"] for p in data] == ["Groq", "DeepSeek", "X.AI", "Cohere"]
        assert [p["configured"] for p in data] == [False, False, True, False]
        assert data[0]["model"] == "openai/gpt-oss-120b"
        assert "xai-key" not in response.text


class TestAppEntrypoint:

    def test_root_banner(self):
        from main import app as main_app, APP_VERSION

        response = TestClient(main_app).get("/")
        assert response.status_code == 200
        assert response.json() == {"service": "SheetSmith", "version": APP_VERSION}

    def test_router_mounted(self):
        from main import app as main_app

        paths = main_app.openapi()["paths"]
        assert "/api/ai" in paths
        assert "/api/ai/providers" in paths
