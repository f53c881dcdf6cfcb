"""Workflow configuration resolution.

Configurations are ``WORKFLOW_CONFIG`` entities. Their target entity type is
denormalized into a ``target_entity_type`` text field so the active
configuration can be found with one indexed lookup, and the configuration
itself is kept in a ``workflow_config`` JSON field. Saving a configuration
never edits an older one; the newest entity wins.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from entity_workflows.core.definition import WorkflowConfig
from entity_workflows.core.models import ResolvedConfig
from entity_workflows.core.types import SmartCode, WorkflowEntityType
from entity_workflows.db.models import EntityModel

if TYPE_CHECKING:
    from entity_workflows.db.repositories import DynamicDataRepository, EntityRepository

__all__ = ["WorkflowConfigResolver"]

logger = logging.getLogger(__name__)

TARGET_ENTITY_TYPE_FIELD = "target_entity_type"
CONFIG_FIELD = "workflow_config"


class WorkflowConfigResolver:
    """Loads and stores workflow configurations in the generic entity store.

    No caching is done; every call re-queries the store.
    """

    def __init__(self, entities: EntityRepository, dynamic_data: DynamicDataRepository) -> None:
        self.entities = entities
        self.dynamic_data = dynamic_data

    async def resolve(self, organization_id: str, entity_type: str) -> ResolvedConfig | None:
        """Return the active configuration for an entity type.

        Args:
            organization_id: Tenant scope.
            entity_type: The business entity type, e.g. ``INVOICE``.

        Returns:
            The newest configuration, or None when the type is not configured.
        """
        config_entity = await self.entities.find_latest_by_field(
            organization_id,
            WorkflowEntityType.WORKFLOW_CONFIG.value,
            TARGET_ENTITY_TYPE_FIELD,
            entity_type,
        )
        if config_entity is None:
            return None

        fields = await self.dynamic_data.get_fields(config_entity.id)
        config = WorkflowConfig.from_dict(fields.get(CONFIG_FIELD) or {})
        return ResolvedConfig(
            config_id=config_entity.id,
            entity_type=entity_type,
            config=config,
            created_at=config_entity.created_at,
        )

    async def store(
        self,
        organization_id: str,
        entity_type: str,
        config: WorkflowConfig,
        actor_user_id: str,
    ) -> ResolvedConfig:
        """Persist a new configuration entity for an entity type.

        Args:
            organization_id: Tenant scope.
            entity_type: Entity type the configuration targets.
            config: A validated configuration.
            actor_user_id: User saving the configuration.

        Returns:
            The stored configuration.
        """
        config_entity = await self.entities.add(
            EntityModel(
                organization_id=organization_id,
                entity_type=WorkflowEntityType.WORKFLOW_CONFIG.value,
                entity_name=f"{entity_type} workflow",
                entity_code=f"WORKFLOW-{entity_type}",
                smart_code=SmartCode.WORKFLOW_CONFIG.value,
                metadata_={"state_count": len(config.states), "transition_count": len(config.transitions)},
                created_by=actor_user_id,
                updated_by=actor_user_id,
            )
        )
        await self.dynamic_data.set_fields(
            config_entity,
            {
                TARGET_ENTITY_TYPE_FIELD: entity_type,
                CONFIG_FIELD: config.to_dict(),
            },
            smart_code=SmartCode.DYNAMIC_FIELD.value,
        )
        logger.info(
            "Stored workflow config %s for %s in organization %s",
            config_entity.id,
            entity_type,
            organization_id,
        )
        return ResolvedConfig(
            config_id=config_entity.id,
            entity_type=entity_type,
            config=config,
            created_at=config_entity.created_at,
        )
