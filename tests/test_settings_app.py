"""Tests for settings and the application factory."""

from __future__ import annotations

from uuid import uuid4

import pytest
from litestar.status_codes import HTTP_200_OK, HTTP_404_NOT_FOUND
from litestar.testing import AsyncTestClient


@pytest.mark.unit
class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default values."""
        from entity_workflows.settings import Settings

        monkeypatch.delenv("ENTITY_WORKFLOWS_DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite+aiosqlite:///./entity_workflows.db"
        assert settings.create_all is True
        assert settings.api_path_prefix == "/workflows"
        assert settings.force_requires_role is False
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test prefixed environment variables are read."""
        from entity_workflows.settings import Settings

        monkeypatch.setenv("ENTITY_WORKFLOWS_API_PATH_PREFIX", "/api/workflows")
        monkeypatch.setenv("ENTITY_WORKFLOWS_FORCE_REQUIRES_ROLE", "true")
        monkeypatch.setenv("ENTITY_WORKFLOWS_DEBUG", "1")

        settings = Settings(_env_file=None)

        assert settings.api_path_prefix == "/api/workflows"
        assert settings.force_requires_role is True
        assert settings.debug is True

    def test_get_settings_is_cached(self) -> None:
        """Test get_settings returns one instance."""
        from entity_workflows.settings import get_settings

        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


@pytest.mark.integration
class TestCreateApp:
    """Tests for the application factory."""

    def test_routes_follow_settings(self) -> None:
        """Test the API prefix and debug flag come from settings."""
        from entity_workflows.app import create_app
        from entity_workflows.settings import Settings

        app = create_app(
            Settings(
                _env_file=None,
                database_url="sqlite+aiosqlite:///:memory:",
                api_path_prefix="/api/workflows",
                debug=True,
            )
        )

        assert app.debug is True
        assert "/api/workflows/graph" in {route.path for route in app.routes}

    async def test_serves_workflow_api(self) -> None:
        """Test the factory wires the database, tables and API together."""
        from entity_workflows.app import create_app
        from entity_workflows.settings import Settings

        app = create_app(Settings(_env_file=None, database_url="sqlite+aiosqlite:///:memory:"))

        async with AsyncTestClient(app=app) as client:
            saved = await client.put(
                "/workflows",
                json={
                    "organization_id": "org-1",
                    "entity_type": "INVOICE",
                    "workflow_config": {
                        "states": [{"code": "DRAFT", "is_initial": True}, {"code": "DONE", "is_final": True}],
                        "transitions": [{"from_state": "DRAFT", "to_state": "DONE"}],
                    },
                    "actor_user_id": "admin",
                },
            )
            graph = await client.get("/workflows/graph", params={"organization_id": "org-1", "entity_type": "INVOICE"})
            missing = await client.get("/workflows", params={"entity_id": str(uuid4()), "organization_id": "org-1"})

        assert saved.status_code == HTTP_200_OK
        assert graph.json()["config_id"] == saved.json()["config_id"]
        assert missing.status_code == HTTP_404_NOT_FOUND
