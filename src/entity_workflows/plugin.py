"""Litestar plugin for entity workflow integration.

This module provides the WorkflowPlugin, which wires the workflow service,
the REST API and the error handlers into a Litestar application.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar.di import Provide
from litestar.plugins import InitPluginProtocol
from litestar.status_codes import HTTP_500_INTERNAL_SERVER_ERROR
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002 - needed for DI

from entity_workflows.engine.service import WorkflowService
from entity_workflows.exceptions import WorkflowsError

if TYPE_CHECKING:
    from litestar.config.app import AppConfig

__all__ = ["WorkflowPlugin", "WorkflowPluginConfig"]


@dataclass
class WorkflowPluginConfig:
    """Configuration for the WorkflowPlugin.

    The plugin expects an ``AsyncSession`` to be injectable as ``db_session``,
    which is what advanced-alchemy's ``SQLAlchemyPlugin`` provides by default.

    Attributes:
        dependency_key_service: The key used for dependency injection of the
            WorkflowService. Defaults to "workflow_service".
        event_bus: Optional event bus implementing ``async emit(name, **payload)``.
            Receives workflow events after each committed operation.
        force_requires_role: Refuse forced transitions for configurations that
            declare no ``force_transition_roles``. Defaults to False.
        enable_api: Whether to enable the REST API endpoints. Defaults to True.
        api_path_prefix: URL path prefix for all workflow API endpoints.
            Defaults to "/workflows".
        api_guards: List of Litestar guards to apply to all workflow API endpoints.
        api_tags: OpenAPI tags to apply to workflow API endpoints.
        include_api_in_schema: Whether to include API endpoints in OpenAPI schema.
            Defaults to True.
    """

    dependency_key_service: str = "workflow_service"
    event_bus: Any | None = None
    force_requires_role: bool = False
    enable_api: bool = True
    api_path_prefix: str = "/workflows"
    api_guards: list[Any] = field(default_factory=list)
    api_tags: list[str] = field(default_factory=lambda: ["Workflows"])
    include_api_in_schema: bool = True


class WorkflowPlugin(InitPluginProtocol):
    """Litestar plugin for entity workflows.

    Provides a request-scoped :class:`WorkflowService` built on the request's
    database session, mounts the workflow API and renders workflow errors.

    Example:
        Basic usage with advanced-alchemy::

            from litestar import Litestar
            from litestar.plugins.sqlalchemy import SQLAlchemyAsyncConfig, SQLAlchemyPlugin

            from entity_workflows import WorkflowPlugin
            from entity_workflows.db.models import EntityModel

            db_config = SQLAlchemyAsyncConfig(
                connection_string="sqlite+aiosqlite:///./workflows.db",
                metadata=EntityModel.metadata,
                create_all=True,
            )
            app = Litestar(plugins=[SQLAlchemyPlugin(config=db_config), WorkflowPlugin()])

        Using the service in a route handler::

            from litestar import get

            from entity_workflows import WorkflowService


            @get("/invoices/{invoice_id:uuid}/state")
            async def invoice_state(invoice_id: UUID, workflow_service: WorkflowService) -> dict:
                view = await workflow_service.get_status(invoice_id, "org-1")
                return {"state": view.state.current_state}
    """

    __slots__ = ("_config",)

    def __init__(self, config: WorkflowPluginConfig | None = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration for the plugin.
        """
        self._config = config or WorkflowPluginConfig()

    @property
    def config(self) -> WorkflowPluginConfig:
        return self._config

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Initialize the plugin when the Litestar app starts.

        This method:
        1. Adds the workflow service provider to the app config
        2. Registers the workflow error handlers
        3. Optionally registers the REST API controller if enable_api=True

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        config = self._config

        async def provide_workflow_service(db_session: AsyncSession) -> WorkflowService:
            return WorkflowService(
                db_session,
                event_bus=config.event_bus,
                force_requires_role=config.force_requires_role,
            )

        app_config.dependencies[config.dependency_key_service] = Provide(provide_workflow_service)
        app_config.signature_namespace.update({"WorkflowService": WorkflowService, "AsyncSession": AsyncSession})

        from entity_workflows.web.exceptions import internal_error_handler, workflow_error_handler

        app_config.exception_handlers[WorkflowsError] = workflow_error_handler  # type: ignore[assignment]
        app_config.exception_handlers.setdefault(HTTP_500_INTERNAL_SERVER_ERROR, internal_error_handler)

        if config.enable_api:
            from litestar import Router

            from entity_workflows.web.controllers import WorkflowController

            workflow_router = Router(
                path=config.api_path_prefix,
                route_handlers=[WorkflowController],
                guards=config.api_guards,
                tags=config.api_tags,
                include_in_schema=config.include_api_in_schema,
            )
            app_config.route_handlers.append(workflow_router)

        return app_config
