"""REST API controller for entity workflows.

This module provides the workflow controller:
- ``POST /``: request a state transition for an entity
- ``PUT /``: store a workflow configuration for an entity type
- ``GET /``: read an entity's state, history and pending approvals
- ``POST /approvals/{id}/decision``: approve or reject an approval request
- ``GET /graph``: visualize a configuration
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar
from uuid import UUID

from litestar import Controller, Request, get, post, put
from litestar.exceptions import SerializationException
from litestar.params import Parameter
from litestar.status_codes import HTTP_200_OK

from entity_workflows.core.models import TransitionRequest
from entity_workflows.engine.service import WorkflowService  # noqa: TC001 - needed for DI
from entity_workflows.exceptions import (
    EntityNotFoundError,
    InvalidPayloadError,
    MissingFieldsError,
    MissingParamsError,
)
from entity_workflows.web.dto import (
    ApprovalDecisionDTO,
    GraphDTO,
    TransitionResultDTO,
    WorkflowConfigSavedDTO,
    WorkflowStatusDTO,
)
from entity_workflows.web.graph import generate_mermaid_graph_with_state, parse_graph_to_dict

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = ["WorkflowController"]

TRANSITION_FIELDS = ("entity_id", "organization_id", "from_state", "to_state", "actor_user_id")
CONFIG_FIELDS = ("organization_id", "entity_type", "workflow_config", "actor_user_id")
DECISION_FIELDS = ("organization_id", "approver_user_id", "decision")


async def _read_json(request: Request[Any, Any, Any]) -> dict[str, Any]:
    try:
        body = await request.json()
    except SerializationException as e:
        raise InvalidPayloadError from e
    if not isinstance(body, dict):
        raise InvalidPayloadError
    return body


def _missing(values: dict[str, Any], names: Sequence[str]) -> list[str]:
    return [name for name in names if values.get(name) is None or values.get(name) == ""]


def _parse_entity_id(value: Any, organization_id: str) -> UUID:
    """Parse an entity ID; a malformed ID cannot name an existing entity."""
    try:
        return UUID(str(value))
    except ValueError as e:
        raise EntityNotFoundError(str(value), organization_id) from e


class WorkflowController(Controller):
    """API controller for entity workflows.

    Provides endpoints for transitions, configuration, status reads,
    approval decisions and graph visualization.

    Tags: Workflows
    """

    path = "/"
    tags: ClassVar[list[str]] = ["Workflows"]

    @post("/", status_code=HTTP_200_OK)
    async def request_transition(
        self,
        request: Request[Any, Any, Any],
        workflow_service: WorkflowService,
    ) -> TransitionResultDTO:
        """Request a state transition for an entity.

        Body: ``entity_id``, ``organization_id``, ``from_state``, ``to_state``,
        ``actor_user_id`` and optionally ``notes``, ``approval_data`` and
        ``force_transition``.

        Args:
            request: The incoming request.
            workflow_service: Injected workflow service.

        Returns:
            The transition outcome.
        """
        body = await _read_json(request)
        missing = _missing(body, TRANSITION_FIELDS)
        if missing:
            raise MissingFieldsError(missing)

        approval_data = body.get("approval_data") or {}
        if not isinstance(approval_data, dict):
            raise InvalidPayloadError("approval_data must be a JSON object")

        organization_id = str(body["organization_id"])
        notes = body.get("notes")
        result = await workflow_service.request_transition(
            TransitionRequest(
                entity_id=_parse_entity_id(body["entity_id"], organization_id),
                organization_id=organization_id,
                from_state=str(body["from_state"]),
                to_state=str(body["to_state"]),
                actor_user_id=str(body["actor_user_id"]),
                notes=None if notes is None else str(notes),
                approval_data=approval_data,
                force_transition=body.get("force_transition") is True,
            )
        )
        return TransitionResultDTO.from_result(result)

    @put("/", status_code=HTTP_200_OK)
    async def save_config(
        self,
        request: Request[Any, Any, Any],
        workflow_service: WorkflowService,
    ) -> WorkflowConfigSavedDTO:
        """Store a workflow configuration for an entity type.

        Body: ``organization_id``, ``entity_type``, ``workflow_config`` and
        ``actor_user_id``. The newest configuration for a type is the active one.

        Args:
            request: The incoming request.
            workflow_service: Injected workflow service.

        Returns:
            Summary of the stored configuration.
        """
        body = await _read_json(request)
        missing = _missing(body, CONFIG_FIELDS)
        if missing:
            raise MissingFieldsError(missing)

        saved = await workflow_service.save_config(
            organization_id=str(body["organization_id"]),
            entity_type=str(body["entity_type"]),
            config_data=body["workflow_config"],
            actor_user_id=str(body["actor_user_id"]),
        )
        return WorkflowConfigSavedDTO.from_saved(saved)

    @get("/")
    async def get_status(
        self,
        workflow_service: WorkflowService,
        entity_id: str | None = Parameter(default=None, description="Entity to report on"),
        organization_id: str | None = Parameter(default=None, description="Organization of the entity"),
        include_history: bool = Parameter(default=False, description="Include executed transitions"),
        include_pending: bool = Parameter(default=False, description="Include pending approval requests"),
    ) -> WorkflowStatusDTO:
        """Get an entity's workflow status.

        Args:
            workflow_service: Injected workflow service.
            entity_id: The entity ID.
            organization_id: The organization ID.
            include_history: Whether to include audit history, newest first.
            include_pending: Whether to include pending approval requests.

        Returns:
            The entity's current state plus the requested lists.
        """
        missing = _missing(
            {"entity_id": entity_id, "organization_id": organization_id},
            ("entity_id", "organization_id"),
        )
        if missing or entity_id is None or organization_id is None:
            raise MissingParamsError(missing)

        view = await workflow_service.get_status(
            _parse_entity_id(entity_id, organization_id),
            organization_id,
            include_history=include_history,
            include_pending=include_pending,
        )
        return WorkflowStatusDTO.from_view(view)

    @post("/approvals/{approval_request_id:uuid}/decision", status_code=HTTP_200_OK)
    async def decide_approval(
        self,
        approval_request_id: UUID,
        request: Request[Any, Any, Any],
        workflow_service: WorkflowService,
    ) -> ApprovalDecisionDTO:
        """Approve or reject an approval request.

        Body: ``organization_id``, ``approver_user_id``, ``decision``
        (``approve`` or ``reject``) and optionally ``comments``. The last
        approval needed applies the transition.

        Args:
            approval_request_id: The approval request.
            request: The incoming request.
            workflow_service: Injected workflow service.

        Returns:
            The request's status after the decision.
        """
        body = await _read_json(request)
        missing = _missing(body, DECISION_FIELDS)
        if missing:
            raise MissingFieldsError(missing)

        comments = body.get("comments")
        result = await workflow_service.decide_approval(
            approval_request_id,
            organization_id=str(body["organization_id"]),
            approver_user_id=str(body["approver_user_id"]),
            decision=str(body["decision"]),
            comments=None if comments is None else str(comments),
        )
        return ApprovalDecisionDTO.from_result(result)

    @get("/graph")
    async def get_graph(
        self,
        workflow_service: WorkflowService,
        organization_id: str | None = Parameter(default=None, description="Organization of the configuration"),
        entity_type: str | None = Parameter(default=None, description="Configured entity type"),
        entity_id: str | None = Parameter(default=None, description="Entity whose position to highlight"),
    ) -> GraphDTO:
        """Get a workflow configuration as a graph.

        Args:
            workflow_service: Injected workflow service.
            organization_id: The organization ID.
            entity_type: The configured entity type.
            entity_id: Optional entity whose current and visited states are highlighted.

        Returns:
            Graph DTO with MermaidJS source, nodes and edges.
        """
        missing = _missing(
            {"organization_id": organization_id, "entity_type": entity_type},
            ("organization_id", "entity_type"),
        )
        if missing or organization_id is None or entity_type is None:
            raise MissingParamsError(missing)

        view = await workflow_service.get_graph(
            organization_id,
            entity_type,
            _parse_entity_id(entity_id, organization_id) if entity_id else None,
        )
        graph_dict = parse_graph_to_dict(view.config)
        return GraphDTO(
            config_id=view.config_id,
            entity_type=view.entity_type,
            mermaid_source=generate_mermaid_graph_with_state(view.config, view.current_state, view.visited_states),
            nodes=graph_dict["nodes"],
            edges=graph_dict["edges"],
            current_state=view.current_state,
        )
