"""Workflow configuration structures.

This module provides the typed model of a workflow configuration: states,
transitions, approval rules and the escalation/notification declarations that
travel with them. Configurations are stored as JSON inside the generic entity
store; :meth:`WorkflowConfig.from_dict` and :meth:`WorkflowConfig.to_dict`
convert between the two representations.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from entity_workflows.exceptions import WorkflowValidationError

__all__ = [
    "ApprovalLevel",
    "ApprovalRule",
    "EscalationRule",
    "NotificationRule",
    "State",
    "Transition",
    "WorkflowConfig",
    "parse_workflow_config",
]


def _str_list(value: Any, path: str, errors: list[str]) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        errors.append(f"{path} must be a list of strings")
        return []
    return list(value)


def _count(value: Any, path: str, errors: list[str], *, minimum: int = 0) -> int:
    if value is None:
        return minimum
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        errors.append(f"{path} must be an integer >= {minimum}")
        return minimum
    return value


def _objects(
    data: Mapping[str, Any], key: str, errors: list[str], prefix: str = ""
) -> list[tuple[str, Mapping[str, Any]]]:
    path = f"{prefix}.{key}" if prefix else key
    raw = data.get(key)
    if raw is None:
        return []
    if not isinstance(raw, list):
        errors.append(f"{path} must be a list")
        return []
    items = []
    for i, item in enumerate(raw):
        if isinstance(item, Mapping):
            items.append((f"{path}[{i}]", item))
        else:
            errors.append(f"{path}[{i}] must be an object")
    return items


def _required_str(item: Mapping[str, Any], key: str, path: str, errors: list[str]) -> str:
    value = item.get(key)
    if not isinstance(value, str) or not value.strip():
        errors.append(f"{path}.{key} is required")
        return ""
    return value


@dataclass
class State:
    """A workflow state.

    Attributes:
        code: Unique state code stored in the entity's ``workflow_state``.
        name: Human-readable label.
        is_initial: Whether entities without a recorded state start here.
        is_final: Whether the state is terminal.
        required_permissions: Permissions declared for the state. Informational;
            they are stored with the configuration but not enforced.
    """

    code: str
    name: str = ""
    is_initial: bool = False
    is_final: bool = False
    required_permissions: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.code.replace("_", " ").title()

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "is_initial": self.is_initial,
            "is_final": self.is_final,
            "required_permissions": list(self.required_permissions),
        }


@dataclass
class Transition:
    """A declared legal move between two states.

    Attributes:
        from_state: Source state code.
        to_state: Target state code.
        name: Optional label, e.g. "submit".
        required_approvals: Number of approvals needed before the move applies.
        approval_roles: Roles allowed to approve when no approval rule levels apply.
        auto_approve: Execute immediately regardless of ``required_approvals``.

    Example:
        >>> Transition(from_state="DRAFT", to_state="SUBMITTED", required_approvals=1)
    """

    from_state: str
    to_state: str
    name: str = ""
    required_approvals: int = 0
    approval_roles: list[str] = field(default_factory=list)
    auto_approve: bool = False

    @property
    def needs_approval(self) -> bool:
        """Whether the transition is gated by approvals."""
        return not self.auto_approve and self.required_approvals > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_state": self.from_state,
            "to_state": self.to_state,
            "name": self.name,
            "required_approvals": self.required_approvals,
            "approval_roles": list(self.approval_roles),
            "auto_approve": self.auto_approve,
        }


@dataclass
class ApprovalLevel:
    """One sequential level of an approval rule.

    Attributes:
        level: Ordering key; lower levels are approved first.
        required_approvals: Approvals needed to clear the level.
        approver_roles: Roles accepted at this level. Empty means any approver.
    """

    level: int
    required_approvals: int = 1
    approver_roles: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "required_approvals": self.required_approvals,
            "approver_roles": list(self.approver_roles),
        }


@dataclass
class ApprovalRule:
    """Approval levels applying to a set of entity types.

    Attributes:
        name: Rule identifier.
        entity_types: Entity types the rule applies to.
        levels: Sequential approval levels.
    """

    name: str
    entity_types: list[str] = field(default_factory=list)
    levels: list[ApprovalLevel] = field(default_factory=list)

    def applies_to(self, entity_type: str) -> bool:
        return entity_type in self.entity_types

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "entity_types": list(self.entity_types),
            "levels": [level.to_dict() for level in self.levels],
        }


@dataclass
class EscalationRule:
    """Declared escalation for approvals left pending too long.

    Escalation rules are validated and stored but not executed by this package.
    """

    name: str
    after_hours: float = 24
    escalate_to_roles: list[str] = field(default_factory=list)
    states: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "after_hours": self.after_hours,
            "escalate_to_roles": list(self.escalate_to_roles),
            "states": list(self.states),
        }


@dataclass
class NotificationRule:
    """Declared notification for workflow events.

    Notification rules are validated and stored but not executed by this package.
    """

    name: str
    events: list[str] = field(default_factory=list)
    recipients_roles: list[str] = field(default_factory=list)
    channels: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "events": list(self.events),
            "recipients_roles": list(self.recipients_roles),
            "channels": list(self.channels),
        }


@dataclass
class WorkflowConfig:
    """Declarative state machine for one entity type.

    Attributes:
        states: Ordered list of states.
        transitions: Legal moves between states.
        approval_rules: Approval rules matched against the entity type.
        escalation_rules: Declared escalations (stored, not executed).
        notification_rules: Declared notifications (stored, not executed).
        force_transition_roles: Roles allowed to bypass approval gating.

    Example:
        >>> config = WorkflowConfig(
        ...     states=[State("DRAFT", is_initial=True), State("SUBMITTED")],
        ...     transitions=[Transition("DRAFT", "SUBMITTED", required_approvals=1)],
        ... )
        >>> config.get_transition("DRAFT", "SUBMITTED").needs_approval
        True
    """

    states: list[State] = field(default_factory=list)
    transitions: list[Transition] = field(default_factory=list)
    approval_rules: list[ApprovalRule] = field(default_factory=list)
    escalation_rules: list[EscalationRule] = field(default_factory=list)
    notification_rules: list[NotificationRule] = field(default_factory=list)
    force_transition_roles: list[str] = field(default_factory=list)

    @property
    def state_codes(self) -> list[str]:
        return [state.code for state in self.states]

    @property
    def initial_state(self) -> State | None:
        """The first state flagged ``is_initial``, if any."""
        return next((state for state in self.states if state.is_initial), None)

    def get_state(self, code: str) -> State | None:
        return next((state for state in self.states if state.code == code), None)

    def get_transition(self, from_state: str, to_state: str) -> Transition | None:
        """Find the transition matching an exact ``(from_state, to_state)`` pair.

        Args:
            from_state: Source state code.
            to_state: Target state code.

        Returns:
            The matching transition or None.
        """
        return next(
            (t for t in self.transitions if t.from_state == from_state and t.to_state == to_state),
            None,
        )

    def transitions_from(self, state: str) -> list[Transition]:
        return [t for t in self.transitions if t.from_state == state]

    def rules_for(self, entity_type: str) -> list[ApprovalRule]:
        """Return every approval rule whose ``entity_types`` include ``entity_type``."""
        return [rule for rule in self.approval_rules if rule.applies_to(entity_type)]

    def validate(self) -> list[str]:
        """Validate the configuration for common issues.

        Returns:
            List of validation error messages. Empty list if valid.
        """
        errors: list[str] = []

        if not self.states:
            errors.append("Workflow must define at least one state")
        if not self.transitions:
            errors.append("Workflow must define at least one transition")

        seen: set[str] = set()
        for code in self.state_codes:
            if code in seen:
                errors.append(f"Duplicate state code '{code}'")
            seen.add(code)

        for i, transition in enumerate(self.transitions):
            if transition.from_state not in seen:
                errors.append(f"Transition {i}: from_state '{transition.from_state}' is not a declared state")
            if transition.to_state not in seen:
                errors.append(f"Transition {i}: to_state '{transition.to_state}' is not a declared state")

        for rule in self.escalation_rules:
            for code in rule.states:
                if code not in seen:
                    errors.append(f"Escalation rule '{rule.name}': state '{code}' is not a declared state")

        return errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "states": [state.to_dict() for state in self.states],
            "transitions": [transition.to_dict() for transition in self.transitions],
            "approval_rules": [rule.to_dict() for rule in self.approval_rules],
            "escalation_rules": [rule.to_dict() for rule in self.escalation_rules],
            "notification_rules": [rule.to_dict() for rule in self.notification_rules],
            "force_transition_roles": list(self.force_transition_roles),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WorkflowConfig:
        """Build a configuration from its JSON representation.

        Structural problems (wrong types, missing codes) are collected and
        raised together. Semantic checks live in :meth:`validate`.

        Args:
            data: The JSON object.

        Returns:
            The parsed configuration.

        Raises:
            WorkflowValidationError: If the data is structurally malformed.
        """
        if not isinstance(data, Mapping):
            raise WorkflowValidationError(["workflow_config must be an object"])

        errors: list[str] = []

        states = [
            State(
                code=_required_str(item, "code", path, errors),
                name=str(item.get("name") or ""),
                is_initial=bool(item.get("is_initial", False)),
                is_final=bool(item.get("is_final", False)),
                required_permissions=_str_list(
                    item.get("required_permissions"), f"{path}.required_permissions", errors
                ),
            )
            for path, item in _objects(data, "states", errors)
        ]

        transitions = [
            Transition(
                from_state=_required_str(item, "from_state", path, errors),
                to_state=_required_str(item, "to_state", path, errors),
                name=str(item.get("name") or ""),
                required_approvals=_count(item.get("required_approvals"), f"{path}.required_approvals", errors),
                approval_roles=_str_list(item.get("approval_roles"), f"{path}.approval_roles", errors),
                auto_approve=bool(item.get("auto_approve", False)),
            )
            for path, item in _objects(data, "transitions", errors)
        ]

        approval_rules = []
        for path, item in _objects(data, "approval_rules", errors):
            levels = [
                ApprovalLevel(
                    level=_count(level.get("level"), f"{level_path}.level", errors, minimum=1),
                    required_approvals=_count(
                        level.get("required_approvals"), f"{level_path}.required_approvals", errors, minimum=1
                    ),
                    approver_roles=_str_list(level.get("approver_roles"), f"{level_path}.approver_roles", errors),
                )
                for level_path, level in _objects(item, "levels", errors, prefix=path)
            ]
            approval_rules.append(
                ApprovalRule(
                    name=str(item.get("name") or path),
                    entity_types=_str_list(item.get("entity_types"), f"{path}.entity_types", errors),
                    levels=levels,
                )
            )

        escalation_rules = []
        for path, item in _objects(data, "escalation_rules", errors):
            after_hours = item.get("after_hours", 24)
            if isinstance(after_hours, bool) or not isinstance(after_hours, (int, float)) or after_hours <= 0:
                errors.append(f"{path}.after_hours must be a positive number")
                after_hours = 24
            escalation_rules.append(
                EscalationRule(
                    name=str(item.get("name") or path),
                    after_hours=after_hours,
                    escalate_to_roles=_str_list(item.get("escalate_to_roles"), f"{path}.escalate_to_roles", errors),
                    states=_str_list(item.get("states"), f"{path}.states", errors),
                )
            )

        notification_rules = [
            NotificationRule(
                name=str(item.get("name") or path),
                events=_str_list(item.get("events"), f"{path}.events", errors),
                recipients_roles=_str_list(item.get("recipients_roles"), f"{path}.recipients_roles", errors),
                channels=_str_list(item.get("channels"), f"{path}.channels", errors),
            )
            for path, item in _objects(data, "notification_rules", errors)
        ]

        force_roles = _str_list(data.get("force_transition_roles"), "force_transition_roles", errors)

        if errors:
            raise WorkflowValidationError(errors)

        return cls(
            states=states,
            transitions=transitions,
            approval_rules=approval_rules,
            escalation_rules=escalation_rules,
            notification_rules=notification_rules,
            force_transition_roles=force_roles,
        )

    def to_mermaid(self) -> str:
        """Generate a MermaidJS graph representation of the state machine.

        Returns:
            MermaidJS graph definition as a string.

        Example:
            >>> print(config.to_mermaid())
            graph TD
                DRAFT([START: Draft])
                SUBMITTED[Submitted]
                DRAFT -->|1 approval| SUBMITTED
        """
        lines = ["graph TD"]

        for state in self.states:
            if state.is_initial:
                lines.append(f"    {state.code}([START: {state.name}])")
            elif state.is_final:
                lines.append(f"    {state.code}[[END: {state.name}]]")
            else:
                lines.append(f"    {state.code}[{state.name}]")

        for transition in self.transitions:
            label = ""
            if transition.needs_approval:
                noun = "approval" if transition.required_approvals == 1 else "approvals"
                label = f"|{transition.required_approvals} {noun}|"
            elif transition.auto_approve:
                label = "|auto|"
            lines.append(f"    {transition.from_state} -->{label} {transition.to_state}")

        return "\n".join(lines)

    def to_mermaid_with_state(
        self,
        current_state: str | None = None,
        visited_states: list[str] | None = None,
    ) -> str:
        """Generate a MermaidJS graph with an entity's position highlighted.

        Args:
            current_state: The entity's current state code.
            visited_states: State codes the entity has passed through.

        Returns:
            MermaidJS graph definition with state styling.
        """
        lines = self.to_mermaid().split("\n")

        for code in visited_states or []:
            if code != current_state and self.get_state(code) is not None:
                lines.append(f"    style {code} fill:#90EE90,stroke:#006400,stroke-width:2px")

        if current_state and self.get_state(current_state) is not None:
            lines.append(f"    style {current_state} fill:#FFD700,stroke:#FFA500,stroke-width:3px")

        return "\n".join(lines)


def parse_workflow_config(data: Mapping[str, Any]) -> WorkflowConfig:
    """Parse and fully validate a workflow configuration.

    Args:
        data: The JSON representation.

    Returns:
        A configuration that passed both structural and semantic checks.

    Raises:
        WorkflowValidationError: With every problem found.
    """
    config = WorkflowConfig.from_dict(data)
    errors = config.validate()
    if errors:
        raise WorkflowValidationError(errors)
    return config
