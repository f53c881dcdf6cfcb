"""Application settings for entity-workflows.

Uses pydantic-settings to load from environment variables (prefixed
``ENTITY_WORKFLOWS_``) or a ``.env`` file.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings

__all__ = ["Settings", "get_settings"]


class Settings(BaseSettings):
    """Settings consumed by :func:`entity_workflows.app.create_app`."""

    # --- Database ---
    database_url: str = "sqlite+aiosqlite:///./entity_workflows.db"
    create_all: bool = True

    # --- API ---
    api_path_prefix: str = "/workflows"
    include_api_in_schema: bool = True

    # --- Workflow policy ---
    force_requires_role: bool = False

    # --- Runtime ---
    debug: bool = False
    log_level: str = "INFO"

    model_config = {
        "env_prefix": "ENTITY_WORKFLOWS_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
