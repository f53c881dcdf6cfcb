"""Workflow service orchestrating the engine components.

Each public method is one unit of work: every write it performs is committed
together at the end, and nothing is kept when any step fails. Domain events
are emitted only after the commit succeeded.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import UUID

from entity_workflows.core.definition import parse_workflow_config
from entity_workflows.core.events import (
    ApprovalDecided,
    ApprovalRequested,
    TransitionCompleted,
    WorkflowConfigured,
)
from entity_workflows.core.models import (
    ApprovalDecisionResult,
    SavedConfig,
    TransitionResult,
    WorkflowGraphView,
    WorkflowStatusView,
)
from entity_workflows.core.types import ApprovalDecision, ApprovalStatus, TransitionStatus, WorkflowEntityType
from entity_workflows.db.repositories import DynamicDataRepository, EntityRepository, RelationshipRepository
from entity_workflows.engine.approvals import ApprovalGate
from entity_workflows.engine.executor import TransitionExecutor
from entity_workflows.engine.queries import WorkflowQueries
from entity_workflows.engine.resolver import WorkflowConfigResolver
from entity_workflows.engine.validator import TransitionValidator, current_state_of
from entity_workflows.exceptions import (
    ApprovalRequestNotFoundError,
    EntityNotFoundError,
    WorkflowNotConfiguredError,
    WorkflowsError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from sqlalchemy.ext.asyncio import AsyncSession

    from entity_workflows.core.events import WorkflowEvent
    from entity_workflows.core.models import ResolvedConfig, TransitionRequest

__all__ = ["WorkflowService"]

logger = logging.getLogger(__name__)


class WorkflowService:
    """Entry point for transitions, configuration, approvals and status reads.

    Attributes:
        session: SQLAlchemy async session; the service owns its transactions.
        event_bus: Optional event bus implementing ``async emit(name, **payload)``.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        event_bus: Any | None = None,
        force_requires_role: bool = False,
    ) -> None:
        """Initialize the service.

        Args:
            session: SQLAlchemy async session.
            event_bus: Optional event bus for events.
            force_requires_role: Refuse forced transitions when the configuration
                names no ``force_transition_roles``.
        """
        self.session = session
        self.event_bus = event_bus

        entities = EntityRepository(session=session)
        dynamic_data = DynamicDataRepository(session=session)
        relationships = RelationshipRepository(session=session)

        self.entities = entities
        self.resolver = WorkflowConfigResolver(entities, dynamic_data)
        self.validator = TransitionValidator()
        self.gate = ApprovalGate(
            entities,
            dynamic_data,
            relationships,
            force_requires_role=force_requires_role,
        )
        self.executor = TransitionExecutor(entities, dynamic_data, relationships)
        self.queries = WorkflowQueries(entities, dynamic_data)
        self._dynamic_data = dynamic_data

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[None]:
        try:
            yield
        except BaseException:
            await self.session.rollback()
            raise
        await self.session.commit()

    async def _emit(self, events: list[WorkflowEvent]) -> None:
        if not self.event_bus:
            return
        for event in events:
            await self.event_bus.emit(event.event_name, **event.to_dict())

    async def _resolve(self, organization_id: str, entity_type: str) -> ResolvedConfig:
        resolved = await self.resolver.resolve(organization_id, entity_type)
        if resolved is None:
            raise WorkflowNotConfiguredError(entity_type, organization_id)
        return resolved

    async def request_transition(self, request: TransitionRequest) -> TransitionResult:
        """Validate a transition and either apply it or park it behind approval.

        Args:
            request: The transition request.

        Returns:
            The outcome. ``status`` is ``completed`` when the state changed and
            ``pending_approval`` when an approval request was created instead.

        Raises:
            EntityNotFoundError: If the entity does not exist in the organization.
            WorkflowNotConfiguredError: If the entity type has no configuration.
            InvalidTransitionError: If the pair is undeclared or the entity is
                not in ``from_state``.
            ForceNotPermittedError: If a forced bypass is refused.
        """
        now = datetime.now(timezone.utc)
        try:
            async with self._unit_of_work():
                entity = await self.entities.get_in_org(
                    request.entity_id,
                    request.organization_id,
                    for_update=True,
                )
                if entity is None:
                    raise EntityNotFoundError(request.entity_id, request.organization_id)

                resolved = await self._resolve(request.organization_id, entity.entity_type)
                config = resolved.config

                validation = self.validator.validate(
                    config,
                    request.from_state,
                    request.to_state,
                    current_state_of(entity, config),
                )
                if validation.error is not None:
                    raise validation.error

                decision = self.gate.evaluate(config, request.from_state, request.to_state, entity.entity_type)
                forced = decision.required and request.force_transition
                if forced:
                    await self.gate.check_force(config, request.organization_id, request.actor_user_id)

                if decision.required and not forced:
                    approval, plan = await self.gate.create_request(entity, decision, request)
                    result = TransitionResult(
                        transition_id=approval.id,
                        status=TransitionStatus.PENDING_APPROVAL,
                        approval_required=True,
                        entity_id=entity.id,
                        from_state=request.from_state,
                        to_state=request.to_state,
                        approval_request_id=approval.id,
                    )
                    event: WorkflowEvent = ApprovalRequested(
                        organization_id=request.organization_id,
                        timestamp=now,
                        entity_id=entity.id,
                        approval_request_id=approval.id,
                        from_state=request.from_state,
                        to_state=request.to_state,
                        requested_by=request.actor_user_id,
                        required_approvals=plan.required_approvals,
                    )
                else:
                    approval_data = dict(request.approval_data)
                    if forced:
                        approval_data["forced"] = True
                    audit_id = await self.executor.execute(
                        entity,
                        request.from_state,
                        request.to_state,
                        request.actor_user_id,
                        notes=request.notes,
                        approval_data=approval_data,
                    )
                    result = TransitionResult(
                        transition_id=audit_id,
                        status=TransitionStatus.COMPLETED,
                        approval_required=decision.required,
                        entity_id=entity.id,
                        from_state=request.from_state,
                        to_state=request.to_state,
                    )
                    event = TransitionCompleted(
                        organization_id=request.organization_id,
                        timestamp=now,
                        entity_id=entity.id,
                        transition_id=audit_id,
                        from_state=request.from_state,
                        to_state=request.to_state,
                        changed_by=request.actor_user_id,
                        forced=forced,
                    )
        except WorkflowsError as exc:
            logger.warning(
                "Transition %s -> %s on entity %s rejected: %s",
                request.from_state,
                request.to_state,
                request.entity_id,
                exc,
            )
            raise

        await self._emit([event])
        return result

    async def save_config(
        self,
        organization_id: str,
        entity_type: str,
        config_data: Mapping[str, Any],
        actor_user_id: str,
    ) -> SavedConfig:
        """Validate and store a workflow configuration for an entity type.

        Args:
            organization_id: Tenant scope.
            entity_type: Entity type the configuration targets.
            config_data: The configuration's JSON representation.
            actor_user_id: User saving the configuration.

        Returns:
            Summary of the stored configuration.

        Raises:
            WorkflowValidationError: With every problem found in the configuration.
        """
        config = parse_workflow_config(config_data)
        async with self._unit_of_work():
            stored = await self.resolver.store(organization_id, entity_type, config, actor_user_id)

        await self._emit(
            [
                WorkflowConfigured(
                    organization_id=organization_id,
                    timestamp=stored.created_at,
                    config_id=stored.config_id,
                    entity_type=entity_type,
                    actor_user_id=actor_user_id,
                )
            ]
        )
        return SavedConfig(
            config_id=stored.config_id,
            organization_id=organization_id,
            entity_type=entity_type,
            state_count=len(config.states),
            transition_count=len(config.transitions),
            created_at=stored.created_at,
        )

    async def get_status(
        self,
        entity_id: UUID,
        organization_id: str,
        *,
        include_history: bool = False,
        include_pending: bool = False,
    ) -> WorkflowStatusView:
        """Return the entity's current state and, on request, history and pending approvals.

        Raises:
            EntityNotFoundError: If the entity does not exist in the organization.
        """
        state = await self.queries.current_state(entity_id, organization_id)
        history = await self.queries.history(entity_id, organization_id) if include_history else None
        pending = await self.queries.pending_approvals(entity_id, organization_id) if include_pending else None
        return WorkflowStatusView(state=state, history=history, pending_approvals=pending)

    async def decide_approval(
        self,
        approval_request_id: UUID,
        organization_id: str,
        approver_user_id: str,
        decision: str,
        comments: str | None = None,
    ) -> ApprovalDecisionResult:
        """Record an approval decision and apply the transition once fully approved.

        The final approval re-validates the transition against the active
        configuration and the entity's state. If either changed since the
        request was created the whole decision is rolled back.

        Args:
            approval_request_id: The approval request.
            organization_id: Tenant scope.
            approver_user_id: User deciding.
            decision: ``approve`` or ``reject``.
            comments: Optional comments stored with the decision.

        Returns:
            The request's status after the decision.

        Raises:
            ApprovalRequestNotFoundError: If the request does not exist.
            ApprovalError: If the decision cannot be recorded.
            InvalidTransitionError: If the pair is no longer declared or the
                entity has left ``from_state`` when the last approval arrives.
            WorkflowNotConfiguredError: If the entity type lost its configuration.
        """
        now = datetime.now(timezone.utc)
        events: list[WorkflowEvent] = []
        try:
            async with self._unit_of_work():
                approval = await self.entities.get_in_org(
                    approval_request_id,
                    organization_id,
                    entity_type=WorkflowEntityType.APPROVAL_REQUEST.value,
                    for_update=True,
                )
                if approval is None:
                    raise ApprovalRequestNotFoundError(approval_request_id)

                fields = await self._dynamic_data.get_fields(approval.id)
                status, plan, approvals = await self.gate.record_decision(
                    approval,
                    fields,
                    approver_user_id,
                    decision,
                    comments,
                )
                events.append(
                    ApprovalDecided(
                        organization_id=organization_id,
                        timestamp=now,
                        approval_request_id=approval.id,
                        approver_user_id=approver_user_id,
                        decision=decision,
                        status=status.value,
                    )
                )

                transition_id = None
                if status == ApprovalStatus.APPROVED:
                    transition_id, completed = await self._apply_approved(
                        approval.id,
                        organization_id,
                        fields,
                        approvals,
                        approver_user_id,
                        now,
                    )
                    await self.gate.attach_transition(approval, transition_id)
                    events.append(completed)
        except WorkflowsError as exc:
            logger.warning(
                "Decision %r by %s on approval request %s rejected: %s",
                decision,
                approver_user_id,
                approval_request_id,
                exc,
            )
            raise

        await self._emit(events)
        return ApprovalDecisionResult(
            approval_request_id=approval_request_id,
            status=status,
            approvals_received=sum(1 for item in approvals if item.get("decision") == ApprovalDecision.APPROVE),
            approvals_required=plan.required_approvals,
            transition_id=transition_id,
        )

    async def _apply_approved(
        self,
        approval_request_id: UUID,
        organization_id: str,
        fields: dict[str, Any],
        approvals: list[dict[str, Any]],
        approver_user_id: str,
        now: datetime,
    ) -> tuple[UUID, TransitionCompleted]:
        target_id = UUID(str(fields.get("target_entity_id")))
        from_state = str(fields.get("from_state"))
        to_state = str(fields.get("to_state"))

        entity = await self.entities.get_in_org(target_id, organization_id, for_update=True)
        if entity is None:
            raise EntityNotFoundError(target_id, organization_id)

        config = (await self._resolve(organization_id, entity.entity_type)).config
        validation = self.validator.validate(config, from_state, to_state, current_state_of(entity, config))
        if validation.error is not None:
            raise validation.error

        approval_data = {
            **(fields.get("approval_data") or {}),
            "approval_request_id": str(approval_request_id),
            "requested_by": fields.get("requested_by"),
            "approvals": approvals,
        }
        audit_id = await self.executor.execute(
            entity,
            from_state,
            to_state,
            approver_user_id,
            notes=fields.get("notes") or None,
            approval_data=approval_data,
        )
        completed = TransitionCompleted(
            organization_id=organization_id,
            timestamp=now,
            entity_id=entity.id,
            transition_id=audit_id,
            from_state=from_state,
            to_state=to_state,
            changed_by=approver_user_id,
        )
        return audit_id, completed

    async def get_graph(
        self,
        organization_id: str,
        entity_type: str,
        entity_id: UUID | None = None,
    ) -> WorkflowGraphView:
        """Return an entity type's configuration, optionally with one entity's position.

        Raises:
            WorkflowNotConfiguredError: If the entity type has no configuration.
            EntityNotFoundError: If ``entity_id`` does not exist in the organization.
        """
        resolved = await self._resolve(organization_id, entity_type)
        view = WorkflowGraphView(
            config_id=resolved.config_id,
            entity_type=entity_type,
            config=resolved.config,
        )
        if entity_id is None:
            return view

        entity = await self.queries.get_entity(entity_id, organization_id)
        history = await self.queries.history(entity_id, organization_id)
        visited: list[str] = []
        for entry in reversed(history):
            for code in (entry.from_state, entry.to_state):
                if code and code not in visited:
                    visited.append(code)

        view.entity_id = entity.id
        view.current_state = current_state_of(entity, resolved.config)
        view.visited_states = visited
        return view
