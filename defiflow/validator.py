from __future__ import annotations

from .actions import ActionRegistry, default_registry
from .graph import WorkflowGraph
from .models import Node, ValidationIssue, ValidationResult

_REGISTRY = default_registry()


def validate(graph: WorkflowGraph, registry: ActionRegistry | None = None) -> ValidationResult:
    """Check a graph snapshot and report every problem found.

    Checks run in a fixed order and accumulate; only an empty graph stops
    early. The graph is never mutated.
    """
    reg = registry or _REGISTRY
    errors: list[ValidationIssue] = []

    if len(graph) == 0:
        errors.append(ValidationIssue(kind="general", message="Workflow must contain at least one node"))
        return ValidationResult(valid=False, errors=errors)

    start_nodes = graph.start_nodes()
    if not start_nodes:
        errors.append(ValidationIssue(kind="general", message="Workflow must have a start node"))
    elif len(start_nodes) > 1:
        errors.append(ValidationIssue(kind="general", message="Workflow cannot have multiple start nodes"))

    start = start_nodes[0] if len(start_nodes) == 1 else None
    if start is not None and not graph.outgoing_edges(start.id):
        errors.append(
            ValidationIssue(
                kind="connection",
                node_id=start.id,
                message="Start node must connect to at least one other node",
            )
        )

    action_nodes = graph.nodes_of_kind("action")
    for node in action_nodes:
        errors.extend(_property_issues(node, reg))

    # With several start nodes, an edge from any of them counts.
    if start_nodes:
        wired_to_start = {
            edge.target for candidate in start_nodes for edge in graph.outgoing_edges(candidate.id)
        }
        for node in action_nodes:
            if graph.incoming_edges(node.id) or node.id in wired_to_start:
                continue
            errors.append(
                ValidationIssue(
                    kind="connection",
                    node_id=node.id,
                    message=f'Node "{node.label}" is not connected to any previous node',
                )
            )

    return ValidationResult(valid=not errors, errors=errors)


def _property_issues(node: Node, registry: ActionRegistry) -> list[ValidationIssue]:
    spec = registry.find(node.action_type)
    if spec is None:
        return [
            ValidationIssue(
                kind="property",
                node_id=node.id,
                message=f'Unknown action type "{node.action_type}" for node "{node.label}"',
            )
        ]
    return [
        ValidationIssue(
            kind="property",
            node_id=node.id,
            message=f'Missing required field: {param.label} for node "{node.label}"',
        )
        for param in spec.missing_fields(node.config)
    ]
