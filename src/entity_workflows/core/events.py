"""Domain events for the workflow lifecycle.

This module defines the events emitted after a workflow operation commits.
They can be used for logging, monitoring, triggering notifications, or
integrating with an external scheduler that acts on escalation rules.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, ClassVar
from uuid import UUID

__all__ = [
    "ApprovalDecided",
    "ApprovalRequested",
    "TransitionCompleted",
    "WorkflowConfigured",
    "WorkflowEvent",
]


@dataclass
class WorkflowEvent:
    """Base class for all workflow events.

    Attributes:
        organization_id: Tenant the event belongs to.
        timestamp: When the event occurred.
    """

    event_name: ClassVar[str] = "workflow.event"

    organization_id: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        """Return the event payload as keyword arguments for an event bus."""
        return asdict(self)


@dataclass
class TransitionCompleted(WorkflowEvent):
    """Event emitted when a state change has been applied.

    Attributes:
        entity_id: The business entity that moved.
        transition_id: ID of the audit record written for the move.
        from_state: Previous state code.
        to_state: New state code.
        changed_by: Actor recorded on the audit record.
        forced: Whether approval gating was bypassed.

    Example:
        >>> event = TransitionCompleted(
        ...     organization_id="org-1",
        ...     timestamp=datetime.now(timezone.utc),
        ...     entity_id=uuid4(),
        ...     transition_id=uuid4(),
        ...     from_state="DRAFT",
        ...     to_state="SUBMITTED",
        ...     changed_by="user-1",
        ... )
    """

    event_name: ClassVar[str] = "workflow.transition_completed"

    entity_id: UUID
    transition_id: UUID
    from_state: str
    to_state: str
    changed_by: str
    forced: bool = False


@dataclass
class ApprovalRequested(WorkflowEvent):
    """Event emitted when a transition is parked behind an approval request.

    Attributes:
        entity_id: The business entity awaiting approval.
        approval_request_id: ID of the approval request entity.
        from_state: Current state code.
        to_state: Requested state code.
        requested_by: User who asked for the transition.
        required_approvals: Total approvals needed.
    """

    event_name: ClassVar[str] = "workflow.approval_requested"

    entity_id: UUID
    approval_request_id: UUID
    from_state: str
    to_state: str
    requested_by: str
    required_approvals: int


@dataclass
class ApprovalDecided(WorkflowEvent):
    """Event emitted when an approver records a decision.

    Attributes:
        approval_request_id: ID of the approval request.
        approver_user_id: User who decided.
        decision: ``approve`` or ``reject``.
        status: Request status after the decision.
    """

    event_name: ClassVar[str] = "workflow.approval_decided"

    approval_request_id: UUID
    approver_user_id: str
    decision: str
    status: str


@dataclass
class WorkflowConfigured(WorkflowEvent):
    """Event emitted when a workflow configuration is stored.

    Attributes:
        config_id: ID of the new configuration entity.
        entity_type: Entity type the configuration targets.
        actor_user_id: User who saved the configuration.
    """

    event_name: ClassVar[str] = "workflow.configured"

    config_id: UUID
    entity_type: str
    actor_user_id: str
