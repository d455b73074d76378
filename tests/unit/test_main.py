"""Tests for the FastAPI application factory module."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from lead_intake.core.config import Settings
from lead_intake.main import create_app


class TestCreateApp:
    """Tests for create_app."""

    @pytest.fixture
    def app(self, settings: Settings):
        with patch("lead_intake.main.get_settings", return_value=settings):
            return create_app()

    def test_app_is_created(self, app) -> None:
        assert app.title == "Lead Intake"

    def test_app_has_openapi_schema(self, app) -> None:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/openapi.json")
        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/api/v1/buyers" in paths
        assert "/api/v1/buyers/{buyer_id}" in paths
        assert "/api/v1/buyers/import" in paths
        assert "/api/v1/auth/login" in paths

    def test_health_needs_no_auth(self, app) -> None:
        client = TestClient(app)
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_value_error_handler_registered(self, app) -> None:
        assert app.exception_handlers.get(ValueError) is not None


class TestAppLifespan:
    """Tests for lifespan management."""

    @pytest.mark.asyncio
    async def test_lifespan_init_and_dispose(self, settings: Settings) -> None:
        """Lifespan context manager initializes and disposes engine."""
        from lead_intake.main import lifespan

        with (
            patch("lead_intake.main.get_settings", return_value=settings),
            patch("lead_intake.main.setup_logging") as mock_setup_logging,
            patch("lead_intake.main.init_engine") as mock_init_engine,
            patch("lead_intake.main.dispose_engine", new_callable=AsyncMock) as mock_dispose,
        ):
            async with lifespan(AsyncMock()):
                mock_setup_logging.assert_called_once_with(settings.log_level, settings.log_dir)
                mock_init_engine.assert_called_once_with(settings.database_url, echo=False, schema=None)
                mock_dispose.assert_not_called()
            mock_dispose.assert_awaited_once()
