"""Core type definitions for entity-workflows.

This module defines the enums and constants shared by the workflow layers:
the entity types and relationship types the workflow subsystem writes into
the generic store, and the statuses it reports.
"""

from __future__ import annotations

import sys
from enum import Enum

# StrEnum backport for Python < 3.11
if sys.version_info >= (3, 11):
    from enum import StrEnum
else:

    class StrEnum(str, Enum):
        """String enumeration compatibility for Python < 3.11."""

        def __str__(self) -> str:
            return str(self.value)


__all__ = [
    "ApprovalDecision",
    "ApprovalStatus",
    "FieldType",
    "RelationshipType",
    "SmartCode",
    "TransitionStatus",
    "WorkflowEntityType",
]


class WorkflowEntityType(StrEnum):
    """Entity types the workflow subsystem stores in ``core_entities``.

    Attributes:
        WORKFLOW_CONFIG: A workflow configuration for one target entity type.
        APPROVAL_REQUEST: A pending or resolved approval for one transition.
        WORKFLOW_AUDIT: An immutable record of one executed transition.
        USER: A user entity; its ``metadata.roles`` list drives authorization.
    """

    WORKFLOW_CONFIG = "WORKFLOW_CONFIG"
    APPROVAL_REQUEST = "APPROVAL_REQUEST"
    WORKFLOW_AUDIT = "WORKFLOW_AUDIT"
    USER = "USER"


class RelationshipType(StrEnum):
    """Relationship types linking a business entity to workflow records.

    Both edges point from the business entity to the workflow record.

    Attributes:
        REQUIRES_APPROVAL: Business entity -> approval request.
        WORKFLOW_AUDIT: Business entity -> audit record.
    """

    REQUIRES_APPROVAL = "REQUIRES_APPROVAL"
    WORKFLOW_AUDIT = "WORKFLOW_AUDIT"


class FieldType(StrEnum):
    """Value type of a ``core_dynamic_data`` row."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    JSON = "json"


class TransitionStatus(StrEnum):
    """Outcome of a transition request.

    Attributes:
        COMPLETED: The state change was applied.
        PENDING_APPROVAL: An approval request was created; state unchanged.
    """

    COMPLETED = "completed"
    PENDING_APPROVAL = "pending_approval"


class ApprovalStatus(StrEnum):
    """Lifecycle status of an approval request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalDecision(StrEnum):
    """Decision an approver may record."""

    APPROVE = "approve"
    REJECT = "reject"


class SmartCode(StrEnum):
    """Smart codes stamped on the rows the workflow subsystem writes."""

    WORKFLOW_CONFIG = "HERA.WORKFLOW.CONFIG.ENTITY.V1"
    APPROVAL_REQUEST = "HERA.WORKFLOW.APPROVAL.REQUEST.V1"
    WORKFLOW_AUDIT = "HERA.WORKFLOW.AUDIT.TRANSITION.V1"
    DYNAMIC_FIELD = "HERA.WORKFLOW.FIELD.VALUE.V1"
    REQUIRES_APPROVAL = "HERA.WORKFLOW.REL.REQUIRES_APPROVAL.V1"
    AUDIT_LINK = "HERA.WORKFLOW.REL.AUDIT.V1"

