"""Graph visualization utilities for workflow configurations.

This module provides utilities for generating visual representations of
workflow state machines, primarily using MermaidJS format.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from entity_workflows.core.definition import WorkflowConfig

__all__ = ["generate_mermaid_graph", "generate_mermaid_graph_with_state", "parse_graph_to_dict"]


def generate_mermaid_graph(config: WorkflowConfig) -> str:
    """Generate a MermaidJS graph representation of a workflow configuration.

    Initial states are drawn as stadiums, final states as subroutines and
    gated transitions carry their approval count.

    Args:
        config: The workflow configuration to visualize.

    Returns:
        A MermaidJS flowchart definition as a string.

    Example:
        >>> print(generate_mermaid_graph(config))
        graph TD
            DRAFT([START: Draft])
            SUBMITTED[Submitted]
            DRAFT -->|1 approval| SUBMITTED
    """
    return config.to_mermaid()


def generate_mermaid_graph_with_state(
    config: WorkflowConfig,
    current_state: str | None = None,
    visited_states: list[str] | None = None,
) -> str:
    """Generate a MermaidJS graph highlighting an entity's position.

    Args:
        config: The workflow configuration to visualize.
        current_state: The entity's current state code.
        visited_states: State codes the entity has passed through.

    Returns:
        A MermaidJS flowchart definition with state styling.
    """
    return config.to_mermaid_with_state(current_state=current_state, visited_states=visited_states)


def parse_graph_to_dict(config: WorkflowConfig) -> dict[str, Any]:
    """Parse a workflow configuration into a dictionary representation.

    Args:
        config: The workflow configuration to parse.

    Returns:
        A dictionary containing nodes and edges lists.

    Example:
        >>> parse_graph_to_dict(config)["nodes"][0]
        {"id": "DRAFT", "label": "Draft", "is_initial": True, "is_terminal": False}
    """
    nodes = [
        {
            "id": state.code,
            "label": state.name,
            "is_initial": state.is_initial,
            "is_terminal": state.is_final,
        }
        for state in config.states
    ]

    edges = []
    for transition in config.transitions:
        edge: dict[str, Any] = {
            "source": transition.from_state,
            "target": transition.to_state,
            "required_approvals": transition.required_approvals,
            "auto_approve": transition.auto_approve,
        }
        if transition.name:
            edge["label"] = transition.name
        edges.append(edge)

    return {
        "nodes": nodes,
        "edges": edges,
    }
