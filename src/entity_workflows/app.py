"""Application factory for running entity-workflows as a service.

Example:
    Run with uvicorn::

        uvicorn entity_workflows.app:create_app --factory
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from litestar import Litestar
from litestar.logging.config import LoggingConfig
from litestar.plugins.sqlalchemy import SQLAlchemyAsyncConfig, SQLAlchemyPlugin

from entity_workflows.db.models import EntityModel
from entity_workflows.plugin import WorkflowPlugin, WorkflowPluginConfig
from entity_workflows.settings import get_settings

if TYPE_CHECKING:
    from entity_workflows.settings import Settings

__all__ = ["create_app"]


def create_app(settings: Settings | None = None) -> Litestar:
    """Create the workflow API application.

    Args:
        settings: Settings to use. Defaults to the environment-derived settings.

    Returns:
        A Litestar application serving the workflow API.
    """
    settings = settings or get_settings()

    db_config = SQLAlchemyAsyncConfig(
        connection_string=settings.database_url,
        metadata=EntityModel.metadata,
        create_all=settings.create_all,
    )
    workflow_config = WorkflowPluginConfig(
        api_path_prefix=settings.api_path_prefix,
        include_api_in_schema=settings.include_api_in_schema,
        force_requires_role=settings.force_requires_role,
    )
    logging_config = LoggingConfig(
        root={"level": settings.log_level, "handlers": ["queue_listener"]},
        loggers={
            "entity_workflows": {"level": settings.log_level, "propagate": True},
        },
    )

    return Litestar(
        plugins=[SQLAlchemyPlugin(config=db_config), WorkflowPlugin(config=workflow_config)],
        logging_config=logging_config,
        debug=settings.debug,
    )
