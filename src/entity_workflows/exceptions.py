"""Exception hierarchy for entity-workflows.

Every exception carries a machine-readable ``code`` and the HTTP ``status_code``
used when it reaches the web layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

__all__ = (
    "ApprovalAlreadyRecordedError",
    "ApprovalAlreadyResolvedError",
    "ApprovalError",
    "ApprovalRequestNotFoundError",
    "EntityNotFoundError",
    "ForceNotPermittedError",
    "InvalidDecisionError",
    "InvalidPayloadError",
    "InvalidTransitionError",
    "MissingFieldsError",
    "MissingParamsError",
    "StateMismatchError",
    "UnauthorizedApproverError",
    "WorkflowNotConfiguredError",
    "WorkflowValidationError",
    "WorkflowsError",
)


class WorkflowsError(Exception):
    """Base exception for all entity-workflows errors.

    All exceptions raised by entity-workflows should inherit from this class.
    This allows users to catch all workflow-related errors with a single except clause.

    Attributes:
        code: Machine-readable error code returned to API clients.
        status_code: HTTP status code used by the web layer.
    """

    code: ClassVar[str] = "workflow_error"
    status_code: ClassVar[int] = 400

    def extra(self) -> dict[str, Any]:
        """Return additional, client-safe details for the error response.

        Returns:
            A JSON-serializable mapping merged into the error body.
        """
        return {}


class InvalidPayloadError(WorkflowsError):
    """Raised when a request body is not a JSON object."""

    code = "invalid_json"

    def __init__(self, message: str = "Request body must be a valid JSON object") -> None:
        super().__init__(message)


class MissingFieldsError(WorkflowsError):
    """Raised when required request body fields are absent.

    Attributes:
        fields: Names of the missing fields.
    """

    code = "missing_required_fields"
    kind: ClassVar[str] = "fields"

    def __init__(self, fields: Sequence[str]) -> None:
        """Initialize the exception with the missing field names.

        Args:
            fields: Names of the missing fields.
        """
        self.fields = list(fields)
        super().__init__(f"Missing required {self.kind}: {', '.join(self.fields)}")

    def extra(self) -> dict[str, Any]:
        return {"fields": self.fields}


class MissingParamsError(MissingFieldsError):
    """Raised when required query parameters are absent."""

    code = "missing_required_params"
    kind = "query parameters"


class EntityNotFoundError(WorkflowsError):
    """Raised when the target entity does not exist in the organization.

    Attributes:
        entity_id: The ID that was looked up.
        organization_id: The organization the lookup was scoped to.
    """

    code = "entity_not_found"
    status_code = 404

    def __init__(self, entity_id: str | UUID, organization_id: str) -> None:
        self.entity_id = entity_id
        self.organization_id = organization_id
        super().__init__(f"Entity '{entity_id}' not found in organization '{organization_id}'")


class WorkflowNotConfiguredError(WorkflowsError):
    """Raised when no workflow configuration exists for an entity type.

    Attributes:
        entity_type: The entity type without a configuration.
        organization_id: The organization that was searched.
    """

    code = "workflow_not_configured"

    def __init__(self, entity_type: str, organization_id: str) -> None:
        self.entity_type = entity_type
        self.organization_id = organization_id
        super().__init__(f"No workflow configured for entity type '{entity_type}'")

    def extra(self) -> dict[str, Any]:
        return {"entity_type": self.entity_type}


class InvalidTransitionError(WorkflowsError):
    """Raised when a requested state change is not allowed.

    Attributes:
        from_state: The state being transitioned from.
        to_state: The state being transitioned to.
        reason: Human-readable explanation.
        valid_transitions: Target states reachable from ``from_state``.
    """

    code = "invalid_transition"

    def __init__(
        self,
        from_state: str,
        to_state: str,
        reason: str | None = None,
        valid_transitions: Sequence[str] = (),
    ) -> None:
        """Initialize the exception with transition details.

        Args:
            from_state: The state being transitioned from.
            to_state: The state being transitioned to.
            reason: Additional context about why the transition is invalid.
            valid_transitions: Target states reachable from ``from_state``.
        """
        self.from_state = from_state
        self.to_state = to_state
        self.reason = reason
        self.valid_transitions = list(valid_transitions)
        msg = f"Invalid transition from '{from_state}' to '{to_state}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)

    def extra(self) -> dict[str, Any]:
        details: dict[str, Any] = {"from_state": self.from_state, "to_state": self.to_state}
        if self.reason:
            details["reason"] = self.reason
        if self.valid_transitions:
            details["valid_transitions"] = self.valid_transitions
        return details


class StateMismatchError(InvalidTransitionError):
    """Raised when the entity is not in the state the transition starts from.

    Attributes:
        current_state: The entity's actual workflow state.
    """

    def __init__(self, from_state: str, to_state: str, current_state: str | None) -> None:
        self.current_state = current_state
        super().__init__(
            from_state,
            to_state,
            reason=f"entity is in state '{current_state}', expected '{from_state}'",
        )

    def extra(self) -> dict[str, Any]:
        return {**super().extra(), "current_state": self.current_state}


class WorkflowValidationError(WorkflowsError):
    """Raised when a workflow configuration fails validation.

    Attributes:
        errors: List of validation error messages.
    """

    code = "invalid_workflow_config"

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(f"Workflow validation failed: {'; '.join(errors)}")

    def extra(self) -> dict[str, Any]:
        return {"errors": self.errors}


class ForceNotPermittedError(WorkflowsError):
    """Raised when an actor asks to bypass approval without holding a bypass role.

    Attributes:
        actor_user_id: The user that requested the bypass.
        allowed_roles: Roles that may force a transition.
    """

    code = "force_not_permitted"
    status_code = 403

    def __init__(self, actor_user_id: str, allowed_roles: Sequence[str]) -> None:
        self.actor_user_id = actor_user_id
        self.allowed_roles = list(allowed_roles)
        super().__init__(f"User '{actor_user_id}' is not permitted to force transitions")

    def extra(self) -> dict[str, Any]:
        return {"allowed_roles": self.allowed_roles}


class ApprovalError(WorkflowsError):
    """Base exception for approval request errors."""


class ApprovalRequestNotFoundError(ApprovalError):
    """Raised when an approval request is not found.

    Attributes:
        approval_request_id: The ID of the missing request.
    """

    code = "approval_request_not_found"
    status_code = 404

    def __init__(self, approval_request_id: str | UUID) -> None:
        self.approval_request_id = approval_request_id
        super().__init__(f"Approval request '{approval_request_id}' not found")


class ApprovalAlreadyResolvedError(ApprovalError):
    """Raised when deciding on a request that is no longer pending.

    Attributes:
        approval_request_id: The ID of the request.
        status: The request's current status.
    """

    code = "approval_already_resolved"
    status_code = 409

    def __init__(self, approval_request_id: str | UUID, status: str) -> None:
        self.approval_request_id = approval_request_id
        self.status = status
        super().__init__(f"Approval request '{approval_request_id}' is already {status}")

    def extra(self) -> dict[str, Any]:
        return {"status": self.status}


class ApprovalAlreadyRecordedError(ApprovalError):
    """Raised when an approver decides twice on the same request."""

    code = "approval_already_recorded"
    status_code = 409

    def __init__(self, approval_request_id: str | UUID, approver_user_id: str) -> None:
        self.approval_request_id = approval_request_id
        self.approver_user_id = approver_user_id
        super().__init__(f"User '{approver_user_id}' already decided on approval request '{approval_request_id}'")


class UnauthorizedApproverError(ApprovalError):
    """Raised when the approver holds none of the roles the current level requires.

    Attributes:
        approver_user_id: The user attempting the decision.
        required_roles: Roles accepted at the current approval level.
    """

    code = "unauthorized_approver"
    status_code = 403

    def __init__(self, approver_user_id: str, required_roles: Sequence[str]) -> None:
        self.approver_user_id = approver_user_id
        self.required_roles = list(required_roles)
        super().__init__(f"User '{approver_user_id}' is not authorized to decide at this approval level")

    def extra(self) -> dict[str, Any]:
        return {"required_roles": self.required_roles}


class InvalidDecisionError(ApprovalError):
    """Raised when an approval decision is not one of the accepted values."""

    code = "invalid_decision"

    def __init__(self, decision: str, valid_values: Sequence[str]) -> None:
        self.decision = decision
        self.valid_values = list(valid_values)
        super().__init__(f"Invalid decision '{decision}'")

    def extra(self) -> dict[str, Any]:
        return {"valid_values": self.valid_values}
