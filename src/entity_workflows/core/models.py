"""Data models returned by the workflow engine components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from entity_workflows.core.definition import ApprovalRule, Transition, WorkflowConfig
from entity_workflows.core.types import ApprovalStatus, TransitionStatus
from entity_workflows.exceptions import InvalidTransitionError

__all__ = [
    "ApprovalDecisionResult",
    "ApprovalRequestView",
    "AuditEntry",
    "EntityWorkflowState",
    "GateDecision",
    "ResolvedConfig",
    "SavedConfig",
    "TransitionRequest",
    "TransitionResult",
    "ValidationResult",
    "WorkflowGraphView",
    "WorkflowStatusView",
]


@dataclass
class TransitionRequest:
    """A client's request to move an entity between two states.

    Attributes:
        entity_id: Target business entity.
        organization_id: Tenant scope.
        from_state: State the client believes the entity is in.
        to_state: Requested state.
        actor_user_id: User making the request.
        notes: Free-text notes copied to the audit or approval record.
        approval_data: Arbitrary payload copied to the audit or approval record.
        force_transition: Ask to bypass approval gating.
    """

    entity_id: UUID
    organization_id: str
    from_state: str
    to_state: str
    actor_user_id: str
    notes: str | None = None
    approval_data: dict[str, Any] = field(default_factory=dict)
    force_transition: bool = False


@dataclass
class TransitionResult:
    """Outcome of a transition request.

    ``transition_id`` is the audit record ID for completed transitions and the
    approval request ID for transitions awaiting approval.
    """

    transition_id: UUID
    status: TransitionStatus
    approval_required: bool
    entity_id: UUID
    from_state: str
    to_state: str
    approval_request_id: UUID | None = None


@dataclass
class ResolvedConfig:
    """The active workflow configuration for an entity type."""

    config_id: UUID
    entity_type: str
    config: WorkflowConfig
    created_at: datetime


@dataclass
class SavedConfig:
    """Summary of a stored workflow configuration."""

    config_id: UUID
    organization_id: str
    entity_type: str
    state_count: int
    transition_count: int
    created_at: datetime


@dataclass
class ValidationResult:
    """Result of checking a requested transition.

    Attributes:
        transition: The matched transition when one exists.
        error: The rejection, None when the transition is valid.
    """

    transition: Transition | None = None
    error: InvalidTransitionError | None = None

    @property
    def valid(self) -> bool:
        return self.error is None

    @property
    def reason(self) -> str | None:
        return self.error.reason if self.error else None


@dataclass
class GateDecision:
    """Whether a transition must wait for approvals.

    Attributes:
        required: True when an approval request must be created.
        transition: The matched transition.
        rules: Approval rules applying to the entity type.
    """

    required: bool
    transition: Transition | None = None
    rules: list[ApprovalRule] = field(default_factory=list)


@dataclass
class EntityWorkflowState:
    """Current workflow position of an entity."""

    entity_id: UUID
    entity_type: str
    entity_name: str
    current_state: str | None
    last_state_change: str | None = None
    last_changed_by: str | None = None
    assigned_to: str | None = None


@dataclass
class AuditEntry:
    """One executed transition, read back from its audit record."""

    audit_id: UUID
    from_state: str | None
    to_state: str | None
    changed_by: str | None
    notes: str | None
    changed_at: datetime | None
    approval_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class ApprovalRequestView:
    """An approval request, read back from its denormalized fields."""

    approval_request_id: UUID
    from_state: str | None
    to_state: str | None
    requested_by: str | None
    status: str
    required_approvals: int
    approvals_received: int
    notes: str | None
    created_at: datetime
    approval_data: dict[str, Any] = field(default_factory=dict)
    approval_rules: list[dict[str, Any]] = field(default_factory=list)
    approval_levels: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class WorkflowStatusView:
    """Answer to a status query: current state plus the opted-in lists."""

    state: EntityWorkflowState
    history: list[AuditEntry] | None = None
    pending_approvals: list[ApprovalRequestView] | None = None


@dataclass
class ApprovalDecisionResult:
    """Outcome of recording an approval decision."""

    approval_request_id: UUID
    status: ApprovalStatus
    approvals_received: int
    approvals_required: int
    transition_id: UUID | None = None


@dataclass
class WorkflowGraphView:
    """A configuration plus, optionally, one entity's position in it.

    Attributes:
        config_id: ID of the configuration entity.
        entity_type: Entity type the configuration targets.
        config: The configuration.
        entity_id: Entity whose position is highlighted, if any.
        current_state: The entity's current state.
        visited_states: States the entity has been in, oldest first.
    """

    config_id: UUID
    entity_type: str
    config: WorkflowConfig
    entity_id: UUID | None = None
    current_state: str | None = None
    visited_states: list[str] = field(default_factory=list)
