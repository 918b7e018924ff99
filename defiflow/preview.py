from __future__ import annotations

from typing import Any

from .actions import ActionRegistry, default_registry, is_empty_value
from .errors import TraversalError
from .graph import WorkflowGraph
from .models import Node, Step

_REGISTRY = default_registry()


def _find_start(graph: WorkflowGraph) -> Node:
    start_nodes = graph.start_nodes()
    if not start_nodes:
        raise TraversalError("no start node")
    if len(start_nodes) > 1:
        raise TraversalError("multiple start nodes")
    return start_nodes[0]


def _walk(graph: WorkflowGraph) -> list[Node]:
    """Depth-first order from the start node, each node at most once.

    End nodes are emitted but never expanded, even if they carry outgoing
    edges.
    """
    start = _find_start(graph)
    visited: set[str] = set()
    order: list[Node] = []
    stack = [start.id]

    while stack:
        node_id = stack.pop()
        if node_id in visited:
            continue
        visited.add(node_id)

        node = graph.get_node(node_id)
        if node is None:
            continue
        order.append(node)
        if node.is_end:
            continue

        # Reversed so the first edge is explored first.
        for edge in reversed(graph.outgoing_edges(node_id)):
            if edge.target not in visited:
                stack.append(edge.target)

    return order


def _action_details(node: Node, registry: ActionRegistry) -> str:
    spec = registry.find(node.action_type)
    if spec is not None:
        details = spec.describe(node.config)
    else:
        details = ", ".join(f"{key}: {value}" for key, value in node.config.items() if not is_empty_value(value))
    return details or "No configuration"


def build_preview(graph: WorkflowGraph, registry: ActionRegistry | None = None) -> list[Step]:
    reg = registry or _REGISTRY
    steps: list[Step] = []

    for node in _walk(graph):
        if node.kind == "action":
            steps.append(
                Step(
                    node_id=node.id,
                    type=node.action_type or "unknown",
                    label=node.label,
                    details=_action_details(node, reg),
                )
            )
        elif node.kind == "condition":
            steps.append(
                Step(
                    node_id=node.id,
                    type="condition",
                    label=node.label,
                    details=node.condition or "No condition specified",
                )
            )
        elif node.is_end:
            steps.append(Step(node_id=node.id, type="end", label=node.label, details="Workflow completes"))

    return steps


def build_action_list(graph: WorkflowGraph) -> list[dict[str, Any]]:
    """Action nodes in execution order, ready to hand to an executor."""
    actions = [node for node in _walk(graph) if node.kind == "action"]
    return [
        {
            "node_id": node.id,
            "name": node.label,
            "type": node.action_type,
            "config": dict(node.config),
            "order": index,
        }
        for index, node in enumerate(actions)
    ]
