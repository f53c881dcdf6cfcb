"""Entity Workflows - Approval state machines over a generic entity store.

This package provides configurable workflow state machines for business
entities kept in universal ``core_entities`` / ``core_dynamic_data`` /
``core_relationships`` tables, served through a Litestar plugin.

Key Features:
    - Per-organization workflow configurations stored as entities
    - Exact-pair transition validation with stale-state protection
    - Multi-level approval gating with role checks
    - Immutable audit trail linked to every entity
    - One database transaction per operation

Example:
    >>> from entity_workflows import WorkflowService, TransitionRequest
    >>>
    >>> service = WorkflowService(session)
    >>> result = await service.request_transition(
    ...     TransitionRequest(
    ...         entity_id=invoice_id,
    ...         organization_id="org-1",
    ...         from_state="DRAFT",
    ...         to_state="SUBMITTED",
    ...         actor_user_id="user-1",
    ...     )
    ... )
    >>> result.status
    'pending_approval'
"""

from __future__ import annotations

from entity_workflows.__metadata__ import __project__, __version__
from entity_workflows.core.definition import WorkflowConfig
from entity_workflows.core.models import TransitionRequest, TransitionResult
from entity_workflows.engine.service import WorkflowService
from entity_workflows.exceptions import (
    ApprovalError,
    EntityNotFoundError,
    ForceNotPermittedError,
    InvalidTransitionError,
    StateMismatchError,
    WorkflowNotConfiguredError,
    WorkflowsError,
    WorkflowValidationError,
)
from entity_workflows.plugin import WorkflowPlugin, WorkflowPluginConfig

__all__ = (
    "ApprovalError",
    "EntityNotFoundError",
    "ForceNotPermittedError",
    "InvalidTransitionError",
    "StateMismatchError",
    "TransitionRequest",
    "TransitionResult",
    "WorkflowConfig",
    "WorkflowNotConfiguredError",
    "WorkflowPlugin",
    "WorkflowPluginConfig",
    "WorkflowService",
    "WorkflowValidationError",
    "WorkflowsError",
    "__project__",
    "__version__",
)
