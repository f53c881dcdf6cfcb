"""Transition execution.

The executor is the only component that changes an entity's
``workflow_state``. Each execution writes one immutable ``WORKFLOW_AUDIT``
entity, patches the target's metadata and links the two. The caller owns the
surrounding transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from entity_workflows.core.types import RelationshipType, SmartCode, WorkflowEntityType
from entity_workflows.db.models import EntityModel

if TYPE_CHECKING:
    from uuid import UUID

    from entity_workflows.db.repositories import (
        DynamicDataRepository,
        EntityRepository,
        RelationshipRepository,
    )

__all__ = ["TransitionExecutor"]

logger = logging.getLogger(__name__)


class TransitionExecutor:
    """Applies validated transitions and writes their audit trail."""

    def __init__(
        self,
        entities: EntityRepository,
        dynamic_data: DynamicDataRepository,
        relationships: RelationshipRepository,
    ) -> None:
        self.entities = entities
        self.dynamic_data = dynamic_data
        self.relationships = relationships

    async def execute(
        self,
        entity: EntityModel,
        from_state: str,
        to_state: str,
        actor_user_id: str,
        notes: str | None = None,
        approval_data: dict[str, Any] | None = None,
    ) -> UUID:
        """Apply a transition to an entity.

        Args:
            entity: The business entity, already validated to be in ``from_state``.
            from_state: Source state code.
            to_state: Target state code.
            actor_user_id: User recorded as the changer.
            notes: Free-text notes for the audit record.
            approval_data: Payload snapshot for the audit record.

        Returns:
            The audit record ID, used as the transition ID.
        """
        now = datetime.now(timezone.utc)

        audit = await self.entities.add(
            EntityModel(
                organization_id=entity.organization_id,
                entity_type=WorkflowEntityType.WORKFLOW_AUDIT.value,
                entity_name=f"{entity.entity_name}: {from_state} -> {to_state}",
                smart_code=SmartCode.WORKFLOW_AUDIT.value,
                metadata_={"target_entity_type": entity.entity_type},
                created_by=actor_user_id,
                updated_by=actor_user_id,
            )
        )
        await self.dynamic_data.set_fields(
            audit,
            {
                "target_entity_id": str(entity.id),
                "from_state": from_state,
                "to_state": to_state,
                "changed_by": actor_user_id,
                "notes": notes or "",
                "approval_data": approval_data or {},
                "changed_at": now,
            },
            smart_code=SmartCode.DYNAMIC_FIELD.value,
        )

        await self.entities.patch_metadata(
            entity,
            {
                "workflow_state": to_state,
                "last_state_change": now.isoformat(),
                "last_changed_by": actor_user_id,
            },
            updated_by=actor_user_id,
        )

        await self.relationships.link(
            entity,
            audit,
            RelationshipType.WORKFLOW_AUDIT.value,
            smart_code=SmartCode.AUDIT_LINK.value,
            created_by=actor_user_id,
        )

        logger.info(
            "Entity %s moved %s -> %s by %s (audit %s)",
            entity.id,
            from_state,
            to_state,
            actor_user_id,
            audit.id,
        )
        return audit.id
