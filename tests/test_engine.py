"""Tests for the workflow engine components.

Covers the validator, the approval plan and gate, the executor, the config
resolver and the read-side queries, each against the in-memory store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import uuid4

import pytest

from entity_workflows.core.definition import parse_workflow_config
from entity_workflows.db.models import EntityModel
from entity_workflows.db.repositories import DynamicDataRepository, EntityRepository, RelationshipRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

ORG = "org-1"


@pytest.fixture
def repos(session: AsyncSession) -> tuple[EntityRepository, DynamicDataRepository, RelationshipRepository]:
    """Repositories bound to the test session."""
    return (
        EntityRepository(session=session),
        DynamicDataRepository(session=session),
        RelationshipRepository(session=session),
    )


async def _invoice(entities: EntityRepository, **metadata: Any) -> EntityModel:
    return await entities.add(
        EntityModel(organization_id=ORG, entity_type="INVOICE", entity_name="Invoice 1001", metadata_=metadata)
    )


# =============================================================================
# Validator
# =============================================================================


@pytest.mark.unit
class TestTransitionValidator:
    """Tests for TransitionValidator."""

    def test_valid_transition(self, invoice_config_data: dict[str, Any]) -> None:
        """Test a declared pair from the current state passes."""
        from entity_workflows.engine.validator import TransitionValidator

        config = parse_workflow_config(invoice_config_data)
        result = TransitionValidator().validate(config, "DRAFT", "SUBMITTED", "DRAFT")

        assert result.valid
        assert result.reason is None
        assert result.transition is config.get_transition("DRAFT", "SUBMITTED")

    def test_undeclared_pair(self, invoice_config_data: dict[str, Any]) -> None:
        """Test an undeclared pair lists the allowed targets."""
        from entity_workflows.engine.validator import TransitionValidator
        from entity_workflows.exceptions import InvalidTransitionError, StateMismatchError

        config = parse_workflow_config(invoice_config_data)
        result = TransitionValidator().validate(config, "DRAFT", "APPROVED", "DRAFT")

        assert not result.valid
        assert isinstance(result.error, InvalidTransitionError)
        assert not isinstance(result.error, StateMismatchError)
        assert result.error.valid_transitions == ["SUBMITTED", "CANCELLED"]
        assert result.reason == "allowed targets from 'DRAFT': SUBMITTED, CANCELLED"

    def test_no_transitions_from_state(self, invoice_config_data: dict[str, Any]) -> None:
        """Test a terminal source state explains that nothing is declared."""
        from entity_workflows.engine.validator import TransitionValidator

        config = parse_workflow_config(invoice_config_data)
        result = TransitionValidator().validate(config, "APPROVED", "DRAFT", "APPROVED")

        assert result.reason == "no transitions are declared from 'APPROVED'"

    def test_state_mismatch(self, invoice_config_data: dict[str, Any]) -> None:
        """Test a declared pair fails when the entity is elsewhere."""
        from entity_workflows.engine.validator import TransitionValidator
        from entity_workflows.exceptions import StateMismatchError

        config = parse_workflow_config(invoice_config_data)
        result = TransitionValidator().validate(config, "SUBMITTED", "APPROVED", "DRAFT")

        assert isinstance(result.error, StateMismatchError)
        assert result.error.current_state == "DRAFT"
        assert result.transition is not None

    def test_current_state_of(self, invoice_config_data: dict[str, Any]) -> None:
        """Test the recorded state wins over the initial state."""
        from entity_workflows.engine.validator import current_state_of

        config = parse_workflow_config(invoice_config_data)
        fresh = EntityModel(organization_id=ORG, entity_type="INVOICE", entity_name="x", metadata_={})
        moved = EntityModel(
            organization_id=ORG,
            entity_type="INVOICE",
            entity_name="x",
            metadata_={"workflow_state": "SUBMITTED"},
        )

        assert current_state_of(fresh) is None
        assert current_state_of(fresh, config) == "DRAFT"
        assert current_state_of(moved, config) == "SUBMITTED"


# =============================================================================
# Approval plan and gate
# =============================================================================


@pytest.mark.unit
class TestApprovalPlan:
    """Tests for ApprovalPlan."""

    def test_transition_only(self) -> None:
        """Test a plan without rules is one level for the transition's count."""
        from entity_workflows.core.definition import Transition
        from entity_workflows.engine.approvals import ApprovalPlan

        plan = ApprovalPlan.build(Transition("A", "B", required_approvals=2, approval_roles=["manager"]), [])

        assert plan.to_list() == [{"level": 1, "required_approvals": 2, "approver_roles": ["manager"]}]
        assert plan.required_approvals == 2

    def test_rule_levels_sorted(self, tiered_config_data: dict[str, Any]) -> None:
        """Test rule levels are ordered and cover the transition's count."""
        from entity_workflows.engine.approvals import ApprovalPlan

        config = parse_workflow_config(tiered_config_data)
        plan = ApprovalPlan.build(
            config.get_transition("PENDING", "ORDERED"),
            config.rules_for("PURCHASE_ORDER"),
        )

        assert [(level.level, level.approver_roles) for level in plan.levels] == [
            (1, ["manager"]),
            (2, ["finance"]),
        ]
        assert plan.required_approvals == 2

    def test_remaining_approvals_get_a_final_level(self, tiered_config_data: dict[str, Any]) -> None:
        """Test approvals the rules do not cover are appended as a last level."""
        from entity_workflows.engine.approvals import ApprovalPlan

        config = parse_workflow_config(tiered_config_data)
        plan = ApprovalPlan.build(config.get_transition("PENDING", "ORDERED"), config.rules_for("INVOICE"))

        assert [(level.level, level.required_approvals) for level in plan.levels] == [(1, 1), (2, 1)]

    def test_current_index(self) -> None:
        """Test levels clear in order and rejections do not count."""
        from entity_workflows.engine.approvals import ApprovalPlan

        plan = ApprovalPlan.from_list(
            [
                {"level": 1, "required_approvals": 1},
                {"level": 2, "required_approvals": 2},
            ]
        )

        assert plan.current_index([]) == 0
        assert plan.current_index([{"decision": "reject", "level_index": 0}]) == 0
        assert plan.current_index([{"decision": "approve", "level_index": 0}]) == 1
        assert (
            plan.current_index(
                [
                    {"decision": "approve", "level_index": 0},
                    {"decision": "approve", "level_index": 1},
                    {"decision": "approve", "level_index": 1},
                ]
            )
            is None
        )


@pytest.mark.integration
class TestApprovalGate:
    """Tests for ApprovalGate."""

    async def test_evaluate(self, repos: Any, invoice_config_data: dict[str, Any]) -> None:
        """Test gating follows required_approvals and auto_approve."""
        from entity_workflows.engine.approvals import ApprovalGate

        gate = ApprovalGate(*repos)
        config = parse_workflow_config(invoice_config_data)

        assert gate.evaluate(config, "DRAFT", "SUBMITTED", "INVOICE").required
        assert not gate.evaluate(config, "SUBMITTED", "APPROVED", "INVOICE").required
        assert not gate.evaluate(config, "SUBMITTED", "DRAFT", "INVOICE").required
        assert not gate.evaluate(config, "DRAFT", "CANCELLED", "INVOICE").required

    async def test_check_force(self, repos: Any, tiered_config_data: dict[str, Any]) -> None:
        """Test forcing requires a listed role when roles are configured."""
        from entity_workflows.engine.approvals import ApprovalGate
        from entity_workflows.exceptions import ForceNotPermittedError

        entities = repos[0]
        await entities.add(
            EntityModel(
                organization_id=ORG,
                entity_type="USER",
                entity_name="root",
                entity_code="root",
                metadata_={"roles": ["admin"]},
            )
        )
        gate = ApprovalGate(*repos)
        config = parse_workflow_config(tiered_config_data)

        await gate.check_force(config, ORG, "root")
        with pytest.raises(ForceNotPermittedError) as exc_info:
            await gate.check_force(config, ORG, "intern")
        assert exc_info.value.allowed_roles == ["admin"]

    async def test_check_force_without_roles(self, repos: Any, invoice_config_data: dict[str, Any]) -> None:
        """Test the bypass is open unless force_requires_role is set."""
        from entity_workflows.engine.approvals import ApprovalGate
        from entity_workflows.exceptions import ForceNotPermittedError

        config = parse_workflow_config(invoice_config_data)

        await ApprovalGate(*repos).check_force(config, ORG, "anyone")
        with pytest.raises(ForceNotPermittedError):
            await ApprovalGate(*repos, force_requires_role=True).check_force(config, ORG, "anyone")

    async def test_create_request(self, repos: Any, invoice_config_data: dict[str, Any]) -> None:
        """Test a request entity is created, filled and linked."""
        from entity_workflows.core.models import TransitionRequest
        from entity_workflows.engine.approvals import ApprovalGate

        entities, dynamic_data, relationships = repos
        invoice = await _invoice(entities)
        gate = ApprovalGate(*repos)
        config = parse_workflow_config(invoice_config_data)
        decision = gate.evaluate(config, "DRAFT", "SUBMITTED", "INVOICE")

        approval, plan = await gate.create_request(
            invoice,
            decision,
            TransitionRequest(
                entity_id=invoice.id,
                organization_id=ORG,
                from_state="DRAFT",
                to_state="SUBMITTED",
                actor_user_id="user-1",
                notes="please",
                approval_data={"amount": 100},
            ),
        )
        fields = await dynamic_data.get_fields(approval.id)

        assert approval.entity_type == "APPROVAL_REQUEST"
        assert plan.required_approvals == 1
        assert fields["target_entity_id"] == str(invoice.id)
        assert fields["status"] == "pending"
        assert fields["requested_by"] == "user-1"
        assert fields["approval_data"] == {"amount": 100}
        assert fields["approvals"] == []
        assert await relationships.count(from_entity_id=invoice.id, relationship_type="REQUIRES_APPROVAL") == 1
        assert (invoice.metadata_ or {}).get("workflow_state") is None

    async def test_record_decision_levels(self, repos: Any, tiered_config_data: dict[str, Any]) -> None:
        """Test levels must be approved in order by users with the level's roles."""
        from entity_workflows.core.models import TransitionRequest
        from entity_workflows.core.types import ApprovalStatus
        from entity_workflows.engine.approvals import ApprovalGate
        from entity_workflows.exceptions import ApprovalAlreadyRecordedError, UnauthorizedApproverError

        entities, dynamic_data, _ = repos
        for user_id, roles in (("mia", ["manager"]), ("fin", ["finance"])):
            await entities.add(
                EntityModel(
                    organization_id=ORG,
                    entity_type="USER",
                    entity_name=user_id,
                    entity_code=user_id,
                    metadata_={"roles": roles},
                )
            )
        order = await entities.add(
            EntityModel(organization_id=ORG, entity_type="PURCHASE_ORDER", entity_name="PO 1", metadata_={})
        )
        gate = ApprovalGate(*repos)
        config = parse_workflow_config(tiered_config_data)
        approval, _ = await gate.create_request(
            order,
            gate.evaluate(config, "PENDING", "ORDERED", "PURCHASE_ORDER"),
            TransitionRequest(
                entity_id=order.id,
                organization_id=ORG,
                from_state="PENDING",
                to_state="ORDERED",
                actor_user_id="buyer",
            ),
        )

        with pytest.raises(UnauthorizedApproverError) as exc_info:
            await gate.record_decision(approval, await dynamic_data.get_fields(approval.id), "fin", "approve")
        assert exc_info.value.required_roles == ["manager"]

        status, _, approvals = await gate.record_decision(
            approval, await dynamic_data.get_fields(approval.id), "mia", "approve", "ok"
        )
        assert status == ApprovalStatus.PENDING
        assert approvals[0]["level_index"] == 0
        assert approvals[0]["roles"] == ["manager"]

        with pytest.raises(ApprovalAlreadyRecordedError):
            await gate.record_decision(approval, await dynamic_data.get_fields(approval.id), "mia", "approve")

        status, plan, approvals = await gate.record_decision(
            approval, await dynamic_data.get_fields(approval.id), "fin", "approve"
        )
        fields = await dynamic_data.get_fields(approval.id)

        assert status == ApprovalStatus.APPROVED
        assert plan.current_index(approvals) is None
        assert fields["status"] == "approved"
        assert fields["resolved_by"] == "fin"

    async def test_record_decision_rejects(self, repos: Any, invoice_config_data: dict[str, Any]) -> None:
        """Test bad decisions, rejection and decisions on resolved requests."""
        from entity_workflows.core.models import TransitionRequest
        from entity_workflows.core.types import ApprovalStatus
        from entity_workflows.engine.approvals import ApprovalGate
        from entity_workflows.exceptions import ApprovalAlreadyResolvedError, InvalidDecisionError

        entities, dynamic_data, _ = repos
        invoice = await _invoice(entities)
        gate = ApprovalGate(*repos)
        config = parse_workflow_config(invoice_config_data)
        approval, _ = await gate.create_request(
            invoice,
            gate.evaluate(config, "DRAFT", "SUBMITTED", "INVOICE"),
            TransitionRequest(
                entity_id=invoice.id,
                organization_id=ORG,
                from_state="DRAFT",
                to_state="SUBMITTED",
                actor_user_id="user-1",
            ),
        )

        with pytest.raises(InvalidDecisionError) as exc_info:
            await gate.record_decision(approval, await dynamic_data.get_fields(approval.id), "u2", "maybe")
        assert exc_info.value.valid_values == ["approve", "reject"]

        status, _, _ = await gate.record_decision(approval, await dynamic_data.get_fields(approval.id), "u2", "reject")
        assert status == ApprovalStatus.REJECTED

        with pytest.raises(ApprovalAlreadyResolvedError) as resolved:
            await gate.record_decision(approval, await dynamic_data.get_fields(approval.id), "u3", "approve")
        assert resolved.value.status == "rejected"


# =============================================================================
# Executor
# =============================================================================


@pytest.mark.integration
class TestTransitionExecutor:
    """Tests for TransitionExecutor."""

    async def test_execute_writes_audit_and_state(self, repos: Any) -> None:
        """Test execution moves the entity and writes one linked audit record."""
        from entity_workflows.engine.executor import TransitionExecutor

        entities, dynamic_data, relationships = repos
        invoice = await _invoice(entities, assigned_to="user-9")

        audit_id = await TransitionExecutor(*repos).execute(
            invoice,
            "DRAFT",
            "SUBMITTED",
            "user-1",
            notes="sent",
            approval_data={"amount": 10},
        )
        audit = await entities.get_in_org(audit_id, ORG, entity_type="WORKFLOW_AUDIT")
        fields = await dynamic_data.get_fields(audit_id)

        assert audit is not None
        assert invoice.metadata_["workflow_state"] == "SUBMITTED"
        assert invoice.metadata_["last_changed_by"] == "user-1"
        assert invoice.metadata_["assigned_to"] == "user-9"
        assert invoice.updated_by == "user-1"
        assert fields["from_state"] == "DRAFT"
        assert fields["to_state"] == "SUBMITTED"
        assert fields["changed_by"] == "user-1"
        assert fields["notes"] == "sent"
        assert fields["approval_data"] == {"amount": 10}
        assert fields["changed_at"] is not None
        assert await relationships.count(from_entity_id=invoice.id, relationship_type="WORKFLOW_AUDIT") == 1


# =============================================================================
# Resolver and queries
# =============================================================================


@pytest.mark.integration
class TestWorkflowConfigResolver:
    """Tests for WorkflowConfigResolver."""

    async def test_resolve_missing(self, repos: Any) -> None:
        """Test an unconfigured type resolves to None."""
        from entity_workflows.engine.resolver import WorkflowConfigResolver

        assert await WorkflowConfigResolver(repos[0], repos[1]).resolve(ORG, "INVOICE") is None

    async def test_newest_config_wins(self, repos: Any, invoice_config_data: dict[str, Any]) -> None:
        """Test storing twice makes the second configuration active."""
        from entity_workflows.engine.resolver import WorkflowConfigResolver

        resolver = WorkflowConfigResolver(repos[0], repos[1])
        first = parse_workflow_config(invoice_config_data)
        second_data = {**invoice_config_data, "transitions": invoice_config_data["transitions"][:1]}
        second = parse_workflow_config(second_data)

        stored_first = await resolver.store(ORG, "INVOICE", first, "admin")
        stored_second = await resolver.store(ORG, "INVOICE", second, "admin")
        resolved = await resolver.resolve(ORG, "INVOICE")

        assert resolved is not None
        assert resolved.config_id == stored_second.config_id != stored_first.config_id
        assert resolved.config == second
        assert await resolver.resolve("org-2", "INVOICE") is None
        assert await resolver.resolve(ORG, "ORDER") is None


@pytest.mark.integration
class TestWorkflowQueries:
    """Tests for WorkflowQueries."""

    async def test_current_state_and_history(self, repos: Any) -> None:
        """Test status reads reflect executed transitions newest first."""
        from entity_workflows.engine.executor import TransitionExecutor
        from entity_workflows.engine.queries import WorkflowQueries

        entities, dynamic_data, _ = repos
        invoice = await _invoice(entities)
        queries = WorkflowQueries(entities, dynamic_data)

        assert (await queries.current_state(invoice.id, ORG)).current_state is None
        assert await queries.history(invoice.id, ORG) == []

        executor = TransitionExecutor(*repos)
        await executor.execute(invoice, "DRAFT", "SUBMITTED", "user-1")
        await executor.execute(invoice, "SUBMITTED", "APPROVED", "user-2", notes="done")

        state = await queries.current_state(invoice.id, ORG)
        history = await queries.history(invoice.id, ORG)

        assert state.current_state == "APPROVED"
        assert state.last_changed_by == "user-2"
        assert state.entity_name == "Invoice 1001"
        assert [(entry.from_state, entry.to_state) for entry in history] == [
            ("SUBMITTED", "APPROVED"),
            ("DRAFT", "SUBMITTED"),
        ]
        assert history[0].notes == "done"
        assert history[1].notes is None

    async def test_get_entity_missing(self, repos: Any) -> None:
        """Test unknown entities raise."""
        from entity_workflows.engine.queries import WorkflowQueries
        from entity_workflows.exceptions import EntityNotFoundError

        with pytest.raises(EntityNotFoundError):
            await WorkflowQueries(repos[0], repos[1]).get_entity(uuid4(), ORG)
