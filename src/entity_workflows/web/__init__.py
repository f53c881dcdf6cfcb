"""Web layer for entity workflows.

This module provides the REST API controller, DTOs, graph helpers and the
exception handlers mounted by :class:`~entity_workflows.plugin.WorkflowPlugin`.
"""

from __future__ import annotations

from entity_workflows.web.controllers import WorkflowController
from entity_workflows.web.exceptions import internal_error_handler, workflow_error_handler
from entity_workflows.web.graph import (
    generate_mermaid_graph,
    generate_mermaid_graph_with_state,
    parse_graph_to_dict,
)

__all__ = [
    "WorkflowController",
    "generate_mermaid_graph",
    "generate_mermaid_graph_with_state",
    "internal_error_handler",
    "parse_graph_to_dict",
    "workflow_error_handler",
]
