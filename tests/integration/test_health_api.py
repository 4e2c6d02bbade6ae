"""
Integration tests for the root and health endpoints
"""

import pytest
from unittest.mock import Mock, patch
from sqlalchemy.exc import OperationalError

from smartdocs.config import settings


@pytest.mark.integration
class TestHealthAPI:

    def test_root(self, client):
        data = client.get("/").json()

        assert data["name"] == settings.APP_NAME
        assert data["status"] == "healthy"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "version": settings.APP_VERSION}

    def test_database_health(self, client):
        response = client.get("/health/database")

        assert response.status_code == 200
        data = response.json()
        assert data["database"] == "connected"
        assert "class" in data["pool"]

    def test_database_unreachable(self, client):
        session = Mock()
        session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

        with patch("smartdocs.main.SessionLocal", return_value=session):
            response = client.get("/health/database")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"
        session.close.assert_called_once()
