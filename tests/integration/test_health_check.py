from unittest.mock import patch

import pytest
from django.db import OperationalError

pytestmark = pytest.mark.integration


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "services" in data

    def test_health_check_reports_database_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["database"]["status"] == "up"
        assert "response_time_ms" in data["services"]["database"]

    def test_health_check_is_public(self, api_client):
        assert api_client.get("/health").status_code == 200

    def test_database_down_returns_503(self, client):
        with patch("modules.core.views.connections") as connections:
            connections.__getitem__.return_value.ensure_connection.side_effect = (
                OperationalError("could not connect")
            )
            response = client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["services"]["database"] == {"status": "down"}
