"""Approval gating and approval request resolution.

The gate decides whether a transition can execute immediately or must wait
for sign-off. When sign-off is needed it creates an ``APPROVAL_REQUEST``
entity, denormalizes the transition context into typed fields and links it to
the business entity with a ``REQUIRES_APPROVAL`` edge.

Approvals are collected level by level. The plan is fixed when the request is
created: the levels of every matching approval rule in level order, followed
by a final level for whatever part of the transition's ``required_approvals``
the rule levels do not cover.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from entity_workflows.core.definition import ApprovalLevel
from entity_workflows.core.models import GateDecision
from entity_workflows.core.types import (
    ApprovalDecision,
    ApprovalStatus,
    RelationshipType,
    SmartCode,
    WorkflowEntityType,
)
from entity_workflows.db.models import EntityModel
from entity_workflows.exceptions import (
    ApprovalAlreadyRecordedError,
    ApprovalAlreadyResolvedError,
    ForceNotPermittedError,
    InvalidDecisionError,
    UnauthorizedApproverError,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from entity_workflows.core.definition import ApprovalRule, Transition, WorkflowConfig
    from entity_workflows.core.models import TransitionRequest
    from entity_workflows.db.repositories import (
        DynamicDataRepository,
        EntityRepository,
        RelationshipRepository,
    )

__all__ = ["ApprovalGate", "ApprovalPlan"]

logger = logging.getLogger(__name__)


@dataclass
class ApprovalPlan:
    """Ordered approval levels an approval request must clear.

    Attributes:
        levels: Levels in the order they are approved.
    """

    levels: list[ApprovalLevel] = field(default_factory=list)

    @classmethod
    def build(cls, transition: Transition, rules: Sequence[ApprovalRule]) -> ApprovalPlan:
        """Build the plan for a transition and its matching approval rules.

        Args:
            transition: The gated transition.
            rules: Approval rules matching the entity type.

        Returns:
            The approval plan.
        """
        levels = sorted((level for rule in rules for level in rule.levels), key=lambda level: level.level)
        remaining = transition.required_approvals - sum(level.required_approvals for level in levels)
        if remaining > 0:
            levels.append(
                ApprovalLevel(
                    level=levels[-1].level + 1 if levels else 1,
                    required_approvals=remaining,
                    approver_roles=list(transition.approval_roles),
                )
            )
        return cls(levels=levels)

    @classmethod
    def from_list(cls, data: Sequence[dict[str, Any]]) -> ApprovalPlan:
        return cls(
            levels=[
                ApprovalLevel(
                    level=int(item.get("level", i + 1)),
                    required_approvals=int(item.get("required_approvals", 1)),
                    approver_roles=list(item.get("approver_roles") or []),
                )
                for i, item in enumerate(data)
            ]
        )

    def to_list(self) -> list[dict[str, Any]]:
        return [level.to_dict() for level in self.levels]

    @property
    def required_approvals(self) -> int:
        return sum(level.required_approvals for level in self.levels)

    def current_index(self, approvals: Sequence[dict[str, Any]]) -> int | None:
        """Return the index of the first level not yet cleared.

        Args:
            approvals: Recorded decisions, each with a ``level_index``.

        Returns:
            The level index, or None when every level is cleared.
        """
        counts = Counter(
            approval.get("level_index")
            for approval in approvals
            if approval.get("decision") == ApprovalDecision.APPROVE
        )
        for index, level in enumerate(self.levels):
            if counts[index] < level.required_approvals:
                return index
        return None


class ApprovalGate:
    """Decides whether transitions need approval and manages approval requests."""

    def __init__(
        self,
        entities: EntityRepository,
        dynamic_data: DynamicDataRepository,
        relationships: RelationshipRepository,
        *,
        force_requires_role: bool = False,
    ) -> None:
        self.entities = entities
        self.dynamic_data = dynamic_data
        self.relationships = relationships
        self.force_requires_role = force_requires_role

    def evaluate(
        self,
        config: WorkflowConfig,
        from_state: str,
        to_state: str,
        entity_type: str,
    ) -> GateDecision:
        """Decide whether a transition requires approval.

        Args:
            config: The resolved workflow configuration.
            from_state: Source state code.
            to_state: Target state code.
            entity_type: Type of the business entity.

        Returns:
            The gate decision with the matching approval rules.
        """
        transition = config.get_transition(from_state, to_state)
        if transition is None or not transition.needs_approval:
            return GateDecision(required=False, transition=transition)
        return GateDecision(required=True, transition=transition, rules=config.rules_for(entity_type))

    async def check_force(self, config: WorkflowConfig, organization_id: str, actor_user_id: str) -> None:
        """Verify the actor may bypass approval gating.

        A configuration that lists ``force_transition_roles`` restricts the
        bypass to actors holding one of them. Without such a list the bypass is
        open unless ``force_requires_role`` is set.

        Raises:
            ForceNotPermittedError: If the actor is not permitted.
        """
        allowed = config.force_transition_roles
        if not allowed:
            if self.force_requires_role:
                raise ForceNotPermittedError(actor_user_id, allowed)
            return

        roles = await self.entities.get_user_roles(organization_id, actor_user_id)
        if roles.isdisjoint(allowed):
            raise ForceNotPermittedError(actor_user_id, allowed)

    async def create_request(
        self,
        entity: EntityModel,
        decision: GateDecision,
        request: TransitionRequest,
    ) -> tuple[EntityModel, ApprovalPlan]:
        """Create and link an approval request for a gated transition.

        The business entity's state is not touched.

        Args:
            entity: The business entity.
            decision: A gate decision with ``required`` set.
            request: The originating transition request.

        Returns:
            Tuple of (approval request entity, approval plan).
        """
        transition = decision.transition
        if transition is None:  # pragma: no cover
            msg = "Cannot create an approval request without a transition"
            raise ValueError(msg)

        plan = ApprovalPlan.build(transition, decision.rules)
        approval = await self.entities.add(
            EntityModel(
                organization_id=entity.organization_id,
                entity_type=WorkflowEntityType.APPROVAL_REQUEST.value,
                entity_name=f"Approval: {entity.entity_name} {request.from_state} -> {request.to_state}",
                smart_code=SmartCode.APPROVAL_REQUEST.value,
                metadata_={"target_entity_type": entity.entity_type},
                created_by=request.actor_user_id,
                updated_by=request.actor_user_id,
            )
        )
        await self.dynamic_data.set_fields(
            approval,
            {
                "target_entity_id": str(entity.id),
                "from_state": request.from_state,
                "to_state": request.to_state,
                "requested_by": request.actor_user_id,
                "approval_rules": [rule.to_dict() for rule in decision.rules],
                "approval_levels": plan.to_list(),
                "required_approvals": plan.required_approvals,
                "notes": request.notes or "",
                "approval_data": request.approval_data,
                "approvals": [],
                "status": ApprovalStatus.PENDING.value,
            },
            smart_code=SmartCode.DYNAMIC_FIELD.value,
        )
        await self.relationships.link(
            entity,
            approval,
            RelationshipType.REQUIRES_APPROVAL.value,
            smart_code=SmartCode.REQUIRES_APPROVAL.value,
            created_by=request.actor_user_id,
        )
        logger.info(
            "Approval request %s created for entity %s (%s -> %s), %d approval(s) required",
            approval.id,
            entity.id,
            request.from_state,
            request.to_state,
            plan.required_approvals,
        )
        return approval, plan

    async def record_decision(
        self,
        approval: EntityModel,
        fields: dict[str, Any],
        approver_user_id: str,
        decision: str,
        comments: str | None = None,
    ) -> tuple[ApprovalStatus, ApprovalPlan, list[dict[str, Any]]]:
        """Record one approver's decision on a pending request.

        Args:
            approval: The approval request entity.
            fields: The request's current dynamic fields.
            approver_user_id: User deciding.
            decision: ``approve`` or ``reject``.
            comments: Optional comments.

        Returns:
            Tuple of (new status, plan, recorded approvals). ``APPROVED`` means
            every level is cleared and the transition may now execute.

        Raises:
            InvalidDecisionError: If ``decision`` is not a known value.
            ApprovalAlreadyResolvedError: If the request is not pending.
            ApprovalAlreadyRecordedError: If the approver already decided.
            UnauthorizedApproverError: If the approver lacks a role of the current level.
        """
        valid = [member.value for member in ApprovalDecision]
        if decision not in valid:
            raise InvalidDecisionError(decision, valid)

        status = fields.get("status") or ApprovalStatus.PENDING.value
        if status != ApprovalStatus.PENDING:
            raise ApprovalAlreadyResolvedError(approval.id, status)

        approvals: list[dict[str, Any]] = list(fields.get("approvals") or [])
        if any(item.get("user_id") == approver_user_id for item in approvals):
            raise ApprovalAlreadyRecordedError(approval.id, approver_user_id)

        plan = ApprovalPlan.from_list(fields.get("approval_levels") or [])
        index = plan.current_index(approvals)
        roles: set[str] = set()
        if index is not None:
            level = plan.levels[index]
            roles = await self.entities.get_user_roles(approval.organization_id, approver_user_id)
            if level.approver_roles and roles.isdisjoint(level.approver_roles):
                raise UnauthorizedApproverError(approver_user_id, level.approver_roles)

        now = datetime.now(timezone.utc)
        approvals.append(
            {
                "user_id": approver_user_id,
                "decision": decision,
                "level_index": index,
                "roles": sorted(roles),
                "comments": comments or "",
                "decided_at": now.isoformat(),
            }
        )

        if decision == ApprovalDecision.REJECT:
            new_status = ApprovalStatus.REJECTED
        elif plan.current_index(approvals) is None:
            new_status = ApprovalStatus.APPROVED
        else:
            new_status = ApprovalStatus.PENDING

        changes: dict[str, Any] = {"approvals": approvals, "status": new_status.value}
        if new_status != ApprovalStatus.PENDING:
            changes["resolved_by"] = approver_user_id
            changes["resolved_at"] = now
        await self.dynamic_data.set_fields(approval, changes, smart_code=SmartCode.DYNAMIC_FIELD.value)

        logger.info(
            "Approval request %s: %s by %s, status %s",
            approval.id,
            decision,
            approver_user_id,
            new_status.value,
        )
        return new_status, plan, approvals

    async def attach_transition(self, approval: EntityModel, transition_id: UUID) -> None:
        """Record the audit ID of the transition an approved request executed."""
        await self.dynamic_data.set_fields(
            approval,
            {"transition_id": str(transition_id)},
            smart_code=SmartCode.DYNAMIC_FIELD.value,
        )
