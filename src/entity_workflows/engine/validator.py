"""Transition validation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from entity_workflows.core.models import ValidationResult
from entity_workflows.exceptions import InvalidTransitionError, StateMismatchError

if TYPE_CHECKING:
    from entity_workflows.core.definition import WorkflowConfig
    from entity_workflows.db.models import EntityModel

__all__ = ["TransitionValidator", "current_state_of"]


def current_state_of(entity: EntityModel, config: WorkflowConfig | None = None) -> str | None:
    """Return an entity's effective workflow state.

    An entity that has never transitioned has no ``workflow_state``; when a
    configuration is given it is treated as being in the initial state.

    Args:
        entity: The business entity.
        config: Optional configuration supplying the initial state.

    Returns:
        The state code, or None when it cannot be determined.
    """
    state = (entity.metadata_ or {}).get("workflow_state")
    if state:
        return str(state)
    if config is not None and config.initial_state is not None:
        return config.initial_state.code
    return None


class TransitionValidator:
    """Checks a requested state change against a configuration.

    Both checks must pass: the ``(from_state, to_state)`` pair must be declared,
    and the entity must currently be in ``from_state``. Nothing is written.
    """

    def validate(
        self,
        config: WorkflowConfig,
        from_state: str,
        to_state: str,
        current_state: str | None,
    ) -> ValidationResult:
        """Validate a transition request.

        Args:
            config: The resolved workflow configuration.
            from_state: State the caller says the entity is in.
            to_state: Requested target state.
            current_state: The entity's actual state.

        Returns:
            A result carrying the matched transition or the rejection.
        """
        transition = config.get_transition(from_state, to_state)
        if transition is None:
            targets = [t.to_state for t in config.transitions_from(from_state)]
            reason = (
                f"allowed targets from '{from_state}': {', '.join(targets)}"
                if targets
                else f"no transitions are declared from '{from_state}'"
            )
            return ValidationResult(
                error=InvalidTransitionError(from_state, to_state, reason=reason, valid_transitions=targets)
            )

        if current_state != from_state:
            return ValidationResult(
                transition=transition,
                error=StateMismatchError(from_state, to_state, current_state),
            )

        return ValidationResult(transition=transition)
