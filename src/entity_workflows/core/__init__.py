"""Core domain module for entity-workflows.

This module exports the building blocks shared by every layer: the typed
workflow configuration, the records returned by the engine, events and types.
"""

from __future__ import annotations

from entity_workflows.core.definition import (
    ApprovalLevel,
    ApprovalRule,
    EscalationRule,
    NotificationRule,
    State,
    Transition,
    WorkflowConfig,
    parse_workflow_config,
)
from entity_workflows.core.events import (
    ApprovalDecided,
    ApprovalRequested,
    TransitionCompleted,
    WorkflowConfigured,
    WorkflowEvent,
)
from entity_workflows.core.models import (
    ApprovalDecisionResult,
    ApprovalRequestView,
    AuditEntry,
    EntityWorkflowState,
    GateDecision,
    ResolvedConfig,
    SavedConfig,
    TransitionRequest,
    TransitionResult,
    ValidationResult,
    WorkflowGraphView,
    WorkflowStatusView,
)
from entity_workflows.core.types import (
    ApprovalDecision,
    ApprovalStatus,
    FieldType,
    RelationshipType,
    SmartCode,
    TransitionStatus,
    WorkflowEntityType,
)

__all__ = [
    "ApprovalDecided",
    "ApprovalDecision",
    "ApprovalDecisionResult",
    "ApprovalLevel",
    "ApprovalRequestView",
    "ApprovalRequested",
    "ApprovalRule",
    "ApprovalStatus",
    "AuditEntry",
    "EntityWorkflowState",
    "EscalationRule",
    "FieldType",
    "GateDecision",
    "NotificationRule",
    "RelationshipType",
    "ResolvedConfig",
    "SavedConfig",
    "SmartCode",
    "State",
    "Transition",
    "TransitionCompleted",
    "TransitionRequest",
    "TransitionResult",
    "TransitionStatus",
    "ValidationResult",
    "WorkflowConfig",
    "WorkflowConfigured",
    "WorkflowEntityType",
    "WorkflowEvent",
    "WorkflowGraphView",
    "WorkflowStatusView",
    "parse_workflow_config",
]
