"""Integration tests for health check endpoints."""

from unittest.mock import MagicMock

from fastapi.testclient import TestClient


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health_returns_healthy(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data


class TestReadinessEndpoint:
    """Tests for GET /health/ready."""

    def test_ready_when_database_and_gateway_available(self, client: TestClient) -> None:
        response = client.get("/health/ready")

        assert response.status_code == 200
        checks = {check["name"]: check for check in response.json()["checks"]}
        assert checks["database"]["healthy"] is True
        assert checks["gateway"]["healthy"] is True

    def test_not_ready_when_database_fails(
        self, client: TestClient, mock_supabase_client: MagicMock
    ) -> None:
        mock_supabase_client.table.return_value.select.return_value.limit.return_value.execute.side_effect = (
            Exception("connection refused")
        )

        response = client.get("/health/ready")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        database = next(c for c in data["checks"] if c["name"] == "database")
        assert database["error"] == "connection refused"


class TestHealthMetadata:
    """Tests for the tag and latency reporting."""

    def test_health_reports_application_tag(self, client: TestClient) -> None:
        assert client.get("/health").json()["application_tag"] == "Dine"

    def test_latency_stats_count_api_requests(self, client: TestClient) -> None:
        client.get("/api/v1/subscriptions/plans/catalog")

        response = client.get("/health/latency")

        assert response.status_code == 200
        data = response.json()
        assert data["total_requests"] >= 1
        assert "/api/v1/subscriptions/plans/catalog" in data["by_path"]
        assert "/health" not in data["by_path"]
