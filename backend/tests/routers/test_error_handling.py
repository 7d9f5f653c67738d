# tests/routers/test_error_handling.py
"""
Integration tests for error handling across the API.

These tests verify:
- Consistent error response format (ErrorDetail schema)
- Correct HTTP status codes for each service error
- Correlation ID in error bodies and headers
- Internal details never reach the client
"""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_reward_service
from app.main import app
from app.services.exceptions import InternalError, StoreError


@pytest.fixture
def failing_service(client: TestClient) -> MagicMock:
    """RewardService stub; the client fixture clears the override afterwards."""
    service = MagicMock()
    app.dependency_overrides[get_reward_service] = lambda: service
    return service


# =============================================================================
# TEST: RESPONSE FORMAT
# =============================================================================

class TestErrorFormat:

    def test_error_body_shape(self, client: TestClient):
        response = client.get("/api/stats/0")

        assert response.status_code == 400
        data = response.json()
        assert set(data) == {"error", "message", "details", "correlation_id"}
        assert data["error"] == "ValidationError"
        assert data["details"] == {"field": "user_id"}

    def test_correlation_id_in_body_matches_header(self, client: TestClient):
        response = client.get("/api/stats/0", headers={"X-Correlation-ID": "trace-42"})

        assert response.headers["X-Correlation-ID"] == "trace-42"
        assert response.json()["correlation_id"] == "trace-42"

    def test_request_validation_format(self, client: TestClient):
        response = client.get("/api/portfolio/not-a-number")

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "RequestValidationError"
        assert data["details"][0]["field"] == "path.user_id"
        assert data["correlation_id"] == response.headers["X-Correlation-ID"]


# =============================================================================
# TEST: SERVICE ERRORS
# =============================================================================

class TestServiceErrors:

    def test_store_error_is_503(self, client: TestClient, failing_service):
        failing_service.portfolio_snapshot.side_effect = StoreError(
            "find_by_user_all", "could not connect to server at 10.0.0.5"
        )

        response = client.get("/api/portfolio/1")

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "5"
        data = response.json()
        assert data["error"] == "StoreError"
        assert "10.0.0.5" not in data["message"]

    def test_internal_error_is_500(self, client: TestClient, failing_service):
        failing_service.current_stats.side_effect = InternalError("current_stats")

        response = client.get("/api/stats/1")

        assert response.status_code == 500
        assert response.json()["error"] == "InternalError"
        assert response.json()["message"] == "Something went wrong"

    def test_write_failure_is_503(self, client: TestClient, failing_service):
        failing_service.create_reward.side_effect = StoreError("append_reward", "disk full")

        response = client.post(
            "/api/reward",
            json={"userId": 1, "stockSymbol": "RELIANCE", "shares": "1"},
        )

        assert response.status_code == 503


# =============================================================================
# TEST: HEALTH
# =============================================================================

class TestHealth:

    def test_healthy(self, client: TestClient):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"] == {"status": "healthy"}
        # Disabled in tests
        assert data["checks"]["price_refresh"] == {"running": False}
