"""Tests for core type definitions."""

from __future__ import annotations

import pytest


@pytest.mark.unit
class TestEnums:
    """Tests for string enums."""

    def test_values_compare_as_strings(self) -> None:
        """Test enum members equal their string values."""
        from entity_workflows.core.types import ApprovalStatus, RelationshipType, TransitionStatus

        assert TransitionStatus.PENDING_APPROVAL == "pending_approval"
        assert ApprovalStatus.PENDING == "pending"
        assert str(RelationshipType.WORKFLOW_AUDIT) == "WORKFLOW_AUDIT"

    def test_entity_types(self) -> None:
        """Test the workflow entity type tags."""
        from entity_workflows.core.types import WorkflowEntityType

        assert {member.value for member in WorkflowEntityType} == {
            "WORKFLOW_CONFIG",
            "APPROVAL_REQUEST",
            "WORKFLOW_AUDIT",
            "USER",
        }

    def test_decisions(self) -> None:
        """Test approval decisions."""
        from entity_workflows.core.types import ApprovalDecision

        assert [member.value for member in ApprovalDecision] == ["approve", "reject"]

    def test_smart_codes_are_namespaced(self) -> None:
        """Test smart codes share the workflow namespace."""
        from entity_workflows.core.types import SmartCode

        assert all(code.value.startswith("HERA.WORKFLOW.") for code in SmartCode)
