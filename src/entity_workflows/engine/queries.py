"""Read-side queries over an entity's workflow records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from entity_workflows.core.models import ApprovalRequestView, AuditEntry, EntityWorkflowState
from entity_workflows.core.types import ApprovalDecision, ApprovalStatus, RelationshipType
from entity_workflows.engine.validator import current_state_of
from entity_workflows.exceptions import EntityNotFoundError

if TYPE_CHECKING:
    from uuid import UUID

    from entity_workflows.db.models import EntityModel
    from entity_workflows.db.repositories import DynamicDataRepository, EntityRepository

__all__ = ["WorkflowQueries"]


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


class WorkflowQueries:
    """Answers status, history and pending-approval reads for an entity.

    All reads are scoped by organization and never write.
    """

    def __init__(self, entities: EntityRepository, dynamic_data: DynamicDataRepository) -> None:
        self.entities = entities
        self.dynamic_data = dynamic_data

    async def get_entity(self, entity_id: UUID, organization_id: str) -> EntityModel:
        """Load an entity or raise.

        Raises:
            EntityNotFoundError: If the entity does not exist in the organization.
        """
        entity = await self.entities.get_in_org(entity_id, organization_id)
        if entity is None:
            raise EntityNotFoundError(entity_id, organization_id)
        return entity

    async def current_state(self, entity_id: UUID, organization_id: str) -> EntityWorkflowState:
        """Return the entity's recorded workflow position.

        The raw ``workflow_state`` is reported; an entity that never
        transitioned reports None.

        Args:
            entity_id: The business entity.
            organization_id: Tenant scope.

        Returns:
            The entity's workflow state.

        Raises:
            EntityNotFoundError: If the entity does not exist in the organization.
        """
        entity = await self.get_entity(entity_id, organization_id)
        metadata = entity.metadata_ or {}
        return EntityWorkflowState(
            entity_id=entity.id,
            entity_type=entity.entity_type,
            entity_name=entity.entity_name,
            current_state=current_state_of(entity),
            last_state_change=_optional_str(metadata.get("last_state_change")),
            last_changed_by=_optional_str(metadata.get("last_changed_by")),
            assigned_to=_optional_str(metadata.get("assigned_to")),
        )

    async def history(self, entity_id: UUID, organization_id: str) -> list[AuditEntry]:
        """Return the entity's executed transitions, newest first.

        Args:
            entity_id: The business entity.
            organization_id: Tenant scope.

        Returns:
            Audit entries ordered by creation time, newest first.
        """
        audits = await self.entities.find_linked(
            organization_id,
            entity_id,
            RelationshipType.WORKFLOW_AUDIT.value,
        )
        fields = await self.dynamic_data.get_fields_for(audit.id for audit in audits)
        entries = []
        for audit in audits:
            values = fields.get(audit.id, {})
            entries.append(
                AuditEntry(
                    audit_id=audit.id,
                    from_state=_optional_str(values.get("from_state")),
                    to_state=_optional_str(values.get("to_state")),
                    changed_by=_optional_str(values.get("changed_by")),
                    notes=values.get("notes") or None,
                    changed_at=values.get("changed_at") or audit.created_at,
                    approval_data=values.get("approval_data") or {},
                )
            )
        return entries

    async def pending_approvals(self, entity_id: UUID, organization_id: str) -> list[ApprovalRequestView]:
        """Return the entity's approval requests whose status is ``pending``.

        Args:
            entity_id: The business entity.
            organization_id: Tenant scope.

        Returns:
            Pending approval requests, newest first.
        """
        approvals = await self.entities.find_linked(
            organization_id,
            entity_id,
            RelationshipType.REQUIRES_APPROVAL.value,
            field_filters={"status": ApprovalStatus.PENDING.value},
        )
        fields = await self.dynamic_data.get_fields_for(approval.id for approval in approvals)
        return [self._approval_view(approval, fields.get(approval.id, {})) for approval in approvals]

    @staticmethod
    def _approval_view(approval: EntityModel, values: dict[str, Any]) -> ApprovalRequestView:
        decisions = values.get("approvals") or []
        return ApprovalRequestView(
            approval_request_id=approval.id,
            from_state=_optional_str(values.get("from_state")),
            to_state=_optional_str(values.get("to_state")),
            requested_by=_optional_str(values.get("requested_by")),
            status=str(values.get("status") or ApprovalStatus.PENDING.value),
            required_approvals=int(values.get("required_approvals") or 0),
            approvals_received=sum(1 for item in decisions if item.get("decision") == ApprovalDecision.APPROVE),
            notes=values.get("notes") or None,
            created_at=approval.created_at,
            approval_data=values.get("approval_data") or {},
            approval_rules=values.get("approval_rules") or [],
            approval_levels=values.get("approval_levels") or [],
        )
