"""Workflow engine components.

This module provides the components that resolve configurations, validate and
gate transitions, execute them with an audit trail and answer status reads,
plus the service that runs them inside one database transaction.
"""

from __future__ import annotations

from entity_workflows.engine.approvals import ApprovalGate, ApprovalPlan
from entity_workflows.engine.executor import TransitionExecutor
from entity_workflows.engine.queries import WorkflowQueries
from entity_workflows.engine.resolver import WorkflowConfigResolver
from entity_workflows.engine.service import WorkflowService
from entity_workflows.engine.validator import TransitionValidator, current_state_of

__all__ = [
    "ApprovalGate",
    "ApprovalPlan",
    "TransitionExecutor",
    "TransitionValidator",
    "WorkflowConfigResolver",
    "WorkflowQueries",
    "WorkflowService",
    "current_state_of",
]
