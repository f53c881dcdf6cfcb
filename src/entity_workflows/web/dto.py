"""Data Transfer Objects for the workflow web API.

This module defines the response shapes of the workflow REST API. Request
bodies are read as raw JSON so that malformed input maps onto the API's own
error codes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from entity_workflows.core.models import (
    ApprovalDecisionResult,
    ApprovalRequestView,
    AuditEntry,
    SavedConfig,
    TransitionResult,
    WorkflowStatusView,
)

__all__ = [
    "ApprovalDecisionDTO",
    "ApprovalRequestDTO",
    "AuditEntryDTO",
    "GraphDTO",
    "TransitionResultDTO",
    "WorkflowConfigSavedDTO",
    "WorkflowStatusDTO",
]


@dataclass
class TransitionResultDTO:
    """DTO for the outcome of a transition request.

    Attributes:
        transition_id: Audit record ID, or the approval request ID when pending.
        status: ``completed`` or ``pending_approval``.
        approval_required: Whether the transition is gated by approvals.
        entity_id: The business entity.
        from_state: Source state code.
        to_state: Target state code.
        approval_request_id: Approval request ID when pending.
    """

    transition_id: UUID
    status: str
    approval_required: bool
    entity_id: UUID
    from_state: str
    to_state: str
    approval_request_id: UUID | None = None

    @classmethod
    def from_result(cls, result: TransitionResult) -> TransitionResultDTO:
        return cls(
            transition_id=result.transition_id,
            status=result.status.value,
            approval_required=result.approval_required,
            entity_id=result.entity_id,
            from_state=result.from_state,
            to_state=result.to_state,
            approval_request_id=result.approval_request_id,
        )


@dataclass
class WorkflowConfigSavedDTO:
    """DTO for a stored workflow configuration."""

    config_id: UUID
    organization_id: str
    entity_type: str
    state_count: int
    transition_count: int
    created_at: datetime

    @classmethod
    def from_saved(cls, saved: SavedConfig) -> WorkflowConfigSavedDTO:
        return cls(
            config_id=saved.config_id,
            organization_id=saved.organization_id,
            entity_type=saved.entity_type,
            state_count=saved.state_count,
            transition_count=saved.transition_count,
            created_at=saved.created_at,
        )


@dataclass
class AuditEntryDTO:
    """DTO for one executed transition.

    Attributes:
        id: Audit record ID.
        from_state: Previous state code.
        to_state: New state code.
        changed_by: User recorded as the changer.
        notes: Notes supplied with the transition.
        changed_at: When the transition was applied.
        approval_data: Payload snapshot.
    """

    id: UUID
    from_state: str | None
    to_state: str | None
    changed_by: str | None
    notes: str | None
    changed_at: datetime | None
    approval_data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_entry(cls, entry: AuditEntry) -> AuditEntryDTO:
        return cls(
            id=entry.audit_id,
            from_state=entry.from_state,
            to_state=entry.to_state,
            changed_by=entry.changed_by,
            notes=entry.notes,
            changed_at=entry.changed_at,
            approval_data=entry.approval_data,
        )


@dataclass
class ApprovalRequestDTO:
    """DTO for an approval request.

    Attributes:
        id: Approval request ID.
        from_state: Current state code of the entity.
        to_state: Requested state code.
        requested_by: User who requested the transition.
        status: ``pending``, ``approved`` or ``rejected``.
        required_approvals: Total approvals needed.
        approvals_received: Approvals recorded so far.
        notes: Notes supplied with the request.
        created_at: When the request was created.
        approval_data: Payload supplied with the request.
        approval_rules: Matching approval rules at request time.
        approval_levels: The approval plan.
    """

    id: UUID
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

    @classmethod
    def from_view(cls, view: ApprovalRequestView) -> ApprovalRequestDTO:
        return cls(
            id=view.approval_request_id,
            from_state=view.from_state,
            to_state=view.to_state,
            requested_by=view.requested_by,
            status=view.status,
            required_approvals=view.required_approvals,
            approvals_received=view.approvals_received,
            notes=view.notes,
            created_at=view.created_at,
            approval_data=view.approval_data,
            approval_rules=view.approval_rules,
            approval_levels=view.approval_levels,
        )


@dataclass
class WorkflowStatusDTO:
    """DTO for an entity's workflow status.

    ``history`` and ``pending_approvals`` are null unless requested.
    """

    entity_id: UUID
    entity_type: str
    entity_name: str
    current_state: str | None
    last_state_change: str | None = None
    last_changed_by: str | None = None
    assigned_to: str | None = None
    history: list[AuditEntryDTO] | None = None
    pending_approvals: list[ApprovalRequestDTO] | None = None

    @classmethod
    def from_view(cls, view: WorkflowStatusView) -> WorkflowStatusDTO:
        state = view.state
        return cls(
            entity_id=state.entity_id,
            entity_type=state.entity_type,
            entity_name=state.entity_name,
            current_state=state.current_state,
            last_state_change=state.last_state_change,
            last_changed_by=state.last_changed_by,
            assigned_to=state.assigned_to,
            history=None if view.history is None else [AuditEntryDTO.from_entry(e) for e in view.history],
            pending_approvals=(
                None
                if view.pending_approvals is None
                else [ApprovalRequestDTO.from_view(a) for a in view.pending_approvals]
            ),
        )


@dataclass
class ApprovalDecisionDTO:
    """DTO for the outcome of an approval decision."""

    approval_request_id: UUID
    status: str
    approvals_received: int
    approvals_required: int
    transition_id: UUID | None = None

    @classmethod
    def from_result(cls, result: ApprovalDecisionResult) -> ApprovalDecisionDTO:
        return cls(
            approval_request_id=result.approval_request_id,
            status=result.status.value,
            approvals_received=result.approvals_received,
            approvals_required=result.approvals_required,
            transition_id=result.transition_id,
        )


@dataclass
class GraphDTO:
    """DTO for workflow graph visualization.

    Attributes:
        config_id: ID of the configuration entity.
        entity_type: Entity type the configuration targets.
        mermaid_source: MermaidJS graph definition.
        nodes: List of node definitions.
        edges: List of edge definitions.
        current_state: Highlighted state when an entity was given.
    """

    config_id: UUID
    entity_type: str
    mermaid_source: str
    nodes: list[dict[str, Any]]
    edges: list[dict[str, Any]]
    current_state: str | None = None
