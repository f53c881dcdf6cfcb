"""Tests for workflow configuration parsing and validation."""

from __future__ import annotations

from typing import Any

import pytest


@pytest.mark.unit
class TestState:
    """Tests for State."""

    def test_name_defaults_from_code(self) -> None:
        """Test a missing name is derived from the code."""
        from entity_workflows.core.definition import State

        assert State(code="IN_REVIEW").name == "In Review"
        assert State(code="X", name="Custom").name == "Custom"


@pytest.mark.unit
class TestTransition:
    """Tests for Transition."""

    def test_needs_approval(self) -> None:
        """Test approval gating flags."""
        from entity_workflows.core.definition import Transition

        assert Transition("A", "B", required_approvals=1).needs_approval
        assert not Transition("A", "B").needs_approval
        assert not Transition("A", "B", required_approvals=3, auto_approve=True).needs_approval


@pytest.mark.unit
class TestWorkflowConfigFromDict:
    """Tests for WorkflowConfig.from_dict."""

    def test_parses_full_config(self, tiered_config_data: dict[str, Any]) -> None:
        """Test every section is parsed."""
        from entity_workflows.core.definition import WorkflowConfig

        config = WorkflowConfig.from_dict(tiered_config_data)

        assert config.state_codes == ["DRAFT", "PENDING", "ORDERED"]
        assert config.initial_state is not None
        assert config.initial_state.code == "DRAFT"
        assert config.get_transition("PENDING", "ORDERED").required_approvals == 2
        assert config.force_transition_roles == ["admin"]
        assert [rule.name for rule in config.rules_for("PURCHASE_ORDER")] == ["po-approval"]
        assert config.rules_for("CONTRACT") == []

    def test_round_trip_keeps_values(self, tiered_config_data: dict[str, Any]) -> None:
        """Test to_dict output parses back into an equal config."""
        from entity_workflows.core.definition import WorkflowConfig

        config = WorkflowConfig.from_dict(tiered_config_data)

        assert WorkflowConfig.from_dict(config.to_dict()) == config

    def test_rejects_non_object(self) -> None:
        """Test a non-mapping is rejected."""
        from entity_workflows.core.definition import WorkflowConfig
        from entity_workflows.exceptions import WorkflowValidationError

        with pytest.raises(WorkflowValidationError) as exc_info:
            WorkflowConfig.from_dict(["not", "an", "object"])  # type: ignore[arg-type]

        assert exc_info.value.errors == ["workflow_config must be an object"]

    def test_collects_structural_errors(self) -> None:
        """Test malformed entries are all reported together."""
        from entity_workflows.core.definition import WorkflowConfig
        from entity_workflows.exceptions import WorkflowValidationError

        data = {
            "states": [{"name": "no code"}, "DRAFT"],
            "transitions": [{"from_state": "DRAFT", "to_state": "DONE", "required_approvals": -1}],
            "approval_rules": [
                {"name": "r", "levels": [{"level": 0, "required_approvals": 0}]},
                {"name": "s", "levels": [{"level": 1}, "second"]},
                {"name": "t", "levels": "all"},
            ],
            "force_transition_roles": "admin",
        }

        with pytest.raises(WorkflowValidationError) as exc_info:
            WorkflowConfig.from_dict(data)

        errors = exc_info.value.errors
        assert "states[0].code is required" in errors
        assert "states[1] must be an object" in errors
        assert "transitions[0].required_approvals must be an integer >= 0" in errors
        assert "approval_rules[0].levels[0].level must be an integer >= 1" in errors
        assert "approval_rules[0].levels[0].required_approvals must be an integer >= 1" in errors
        assert "approval_rules[1].levels[1] must be an object" in errors
        assert "approval_rules[2].levels must be a list" in errors
        assert not any(error.startswith("levels") for error in errors)
        assert "force_transition_roles must be a list of strings" in errors


@pytest.mark.unit
class TestWorkflowConfigValidate:
    """Tests for semantic validation."""

    def test_accepts_valid_config(self, invoice_config_data: dict[str, Any]) -> None:
        """Test a config with unique codes and transitions passes."""
        from entity_workflows.core.definition import parse_workflow_config

        config = parse_workflow_config(invoice_config_data)

        assert len(config.states) == 4
        assert len(config.transitions) == 4

    def test_accepts_minimal_config(self) -> None:
        """Test two states and one transition are enough."""
        from entity_workflows.core.definition import parse_workflow_config

        config = parse_workflow_config(
            {"states": [{"code": "A"}, {"code": "B"}], "transitions": [{"from_state": "A", "to_state": "B"}]}
        )

        assert config.initial_state is None

    def test_rejects_empty_states(self) -> None:
        """Test zero states is rejected."""
        from entity_workflows.core.definition import parse_workflow_config
        from entity_workflows.exceptions import WorkflowValidationError

        with pytest.raises(WorkflowValidationError) as exc_info:
            parse_workflow_config({"states": [], "transitions": []})

        assert "Workflow must define at least one state" in exc_info.value.errors
        assert "Workflow must define at least one transition" in exc_info.value.errors

    def test_rejects_missing_transitions(self) -> None:
        """Test zero transitions is rejected."""
        from entity_workflows.core.definition import parse_workflow_config
        from entity_workflows.exceptions import WorkflowValidationError

        with pytest.raises(WorkflowValidationError) as exc_info:
            parse_workflow_config({"states": [{"code": "A"}]})

        assert exc_info.value.errors == ["Workflow must define at least one transition"]

    def test_rejects_duplicate_state_codes(self) -> None:
        """Test duplicate state codes are rejected."""
        from entity_workflows.core.definition import parse_workflow_config
        from entity_workflows.exceptions import WorkflowValidationError

        with pytest.raises(WorkflowValidationError) as exc_info:
            parse_workflow_config(
                {
                    "states": [{"code": "A"}, {"code": "B"}, {"code": "A"}],
                    "transitions": [{"from_state": "A", "to_state": "B"}],
                }
            )

        assert exc_info.value.errors == ["Duplicate state code 'A'"]

    def test_rejects_undeclared_endpoints(self) -> None:
        """Test transitions must reference declared states."""
        from entity_workflows.core.definition import parse_workflow_config
        from entity_workflows.exceptions import WorkflowValidationError

        with pytest.raises(WorkflowValidationError) as exc_info:
            parse_workflow_config(
                {
                    "states": [{"code": "A"}],
                    "transitions": [{"from_state": "A", "to_state": "Z"}],
                }
            )

        assert exc_info.value.errors == ["Transition 0: to_state 'Z' is not a declared state"]

    def test_rejects_unknown_escalation_state(self) -> None:
        """Test escalation rules must reference declared states."""
        from entity_workflows.core.definition import parse_workflow_config
        from entity_workflows.exceptions import WorkflowValidationError

        with pytest.raises(WorkflowValidationError) as exc_info:
            parse_workflow_config(
                {
                    "states": [{"code": "A"}, {"code": "B"}],
                    "transitions": [{"from_state": "A", "to_state": "B"}],
                    "escalation_rules": [{"name": "slow", "after_hours": 48, "states": ["C"]}],
                }
            )

        assert exc_info.value.errors == ["Escalation rule 'slow': state 'C' is not a declared state"]


@pytest.mark.unit
class TestWorkflowConfigLookups:
    """Tests for transition lookups."""

    def test_exact_pair_only(self, invoice_config_data: dict[str, Any]) -> None:
        """Test transitions match on the exact pair."""
        from entity_workflows.core.definition import parse_workflow_config

        config = parse_workflow_config(invoice_config_data)

        assert config.get_transition("DRAFT", "SUBMITTED") is not None
        assert config.get_transition("SUBMITTED", "DRAFT") is not None
        assert config.get_transition("DRAFT", "APPROVED") is None
        assert [t.to_state for t in config.transitions_from("DRAFT")] == ["SUBMITTED", "CANCELLED"]
        assert config.transitions_from("APPROVED") == []


@pytest.mark.unit
class TestMermaid:
    """Tests for MermaidJS generation."""

    def test_to_mermaid(self, invoice_config_data: dict[str, Any]) -> None:
        """Test node shapes and edge labels."""
        from entity_workflows.core.definition import parse_workflow_config

        mermaid = parse_workflow_config(invoice_config_data).to_mermaid()
        lines = mermaid.split("\n")

        assert lines[0] == "graph TD"
        assert "    DRAFT([START: Draft])" in lines
        assert "    SUBMITTED[Submitted]" in lines
        assert "    APPROVED[[END: Approved]]" in lines
        assert "    DRAFT -->|1 approval| SUBMITTED" in lines
        assert "    SUBMITTED -->|auto| APPROVED" in lines
        assert "    SUBMITTED --> DRAFT" in lines

    def test_to_mermaid_with_state(self, invoice_config_data: dict[str, Any]) -> None:
        """Test visited and current states are styled."""
        from entity_workflows.core.definition import parse_workflow_config

        mermaid = parse_workflow_config(invoice_config_data).to_mermaid_with_state(
            current_state="SUBMITTED",
            visited_states=["DRAFT", "SUBMITTED", "UNKNOWN"],
        )

        assert "style DRAFT fill:#90EE90" in mermaid
        assert "style SUBMITTED fill:#FFD700" in mermaid
        assert "UNKNOWN" not in mermaid
