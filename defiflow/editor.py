"""Editing state for one workflow on the canvas.

``EditorSession`` owns the working graph and the current selection; every
panel goes through its methods instead of sharing ambient state.
``BalanceTracker`` lets interested components subscribe to wallet balance
changes.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .actions import ActionRegistry, NodeTemplate, create_node_from_template, default_registry, find_template
from .errors import NodeNotFoundError, WorkflowValidationError
from .graph import WorkflowGraph
from .models import Edge, Node, Step, ValidationResult, Workflow, WorkflowPatch
from .preview import build_preview
from .store import SQLiteStore
from .validator import validate

logger = logging.getLogger(__name__)


class EditorSession:
    def __init__(
        self,
        registry: ActionRegistry | None = None,
        workflow: Workflow | None = None,
    ) -> None:
        self.registry = registry or default_registry()
        self.workflow_id: str | None = None
        self.name = ""
        self.description = ""
        self.graph = WorkflowGraph()
        self.selected_node_id: str | None = None
        if workflow is not None:
            self.load(workflow)

    def load(self, workflow: Workflow) -> None:
        self.workflow_id = workflow.id
        self.name = workflow.name
        self.description = workflow.description
        self.graph = WorkflowGraph.from_workflow(workflow)
        self.selected_node_id = None

    @property
    def selected(self) -> Node | None:
        if self.selected_node_id is None:
            return None
        return self.graph.get_node(self.selected_node_id)

    def drop_template(self, template: NodeTemplate | str, position: dict[str, float] | None = None) -> Node:
        if isinstance(template, str):
            found = find_template(template)
            if found is None:
                raise KeyError(f"Unknown node template: {template}")
            template = found
        node = create_node_from_template(template, position, self.registry)
        return self.graph.add_node(node)

    def connect(self, source: str, target: str, source_handle: str | None = None, target_handle: str | None = None) -> Edge:
        return self.graph.connect(source, target, source_handle, target_handle)

    def select(self, node_id: str | None) -> Node | None:
        if node_id is not None and node_id not in self.graph:
            raise NodeNotFoundError(f"Unknown node: {node_id}")
        self.selected_node_id = node_id
        return self.selected

    def update_selected(
        self,
        *,
        label: str | None = None,
        config: dict[str, Any] | None = None,
        condition: str | None = None,
    ) -> Node:
        if self.selected_node_id is None:
            raise NodeNotFoundError("No node is selected")
        return self.graph.update_node(self.selected_node_id, label=label, config=config, condition=condition)

    def delete_node(self, node_id: str) -> Node:
        node = self.graph.remove_node(node_id)
        if self.selected_node_id == node_id:
            self.selected_node_id = None
        return node

    def delete_selected(self) -> Node | None:
        if self.selected_node_id is None:
            return None
        return self.delete_node(self.selected_node_id)

    def clear(self) -> None:
        self.graph = WorkflowGraph()
        self.selected_node_id = None

    def validate(self) -> ValidationResult:
        return validate(self.graph, self.registry)

    def preview(self) -> list[Step]:
        return build_preview(self.graph, self.registry)

    def to_workflow(self) -> Workflow:
        payload = self.graph.to_payload()
        data: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "nodes": payload["nodes"],
            "edges": payload["edges"],
        }
        if self.workflow_id is not None:
            data["id"] = self.workflow_id
        return Workflow.model_validate(data)

    def save(self, store: SQLiteStore) -> Workflow:
        """Validate and flush the working copy, creating or updating as needed."""
        if not self.name.strip():
            raise ValueError("Workflow name is required")
        result = self.validate()
        if not result.valid:
            raise WorkflowValidationError(result.errors)

        workflow = self.to_workflow()
        if self.workflow_id is not None and store.get_workflow(self.workflow_id) is not None:
            patch = WorkflowPatch(
                name=workflow.name,
                description=workflow.description,
                nodes=workflow.nodes,
                edges=workflow.edges,
            )
            saved = store.update_workflow(self.workflow_id, patch)
            if saved is not None:
                return saved

        saved = store.create_workflow(workflow)
        self.workflow_id = saved.id
        return saved


BalanceListener = Callable[[str, dict[str, float]], None]


class BalanceTracker:
    def __init__(self) -> None:
        self._balances: dict[str, dict[str, float]] = {}
        self._listeners: list[BalanceListener] = []

    def subscribe(self, listener: BalanceListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def balances(self, address: str) -> dict[str, float]:
        return dict(self._balances.get(address, {}))

    def update(self, address: str, balances: dict[str, float]) -> None:
        self._balances[address] = dict(balances)
        logger.debug("Balances updated for %s: %s", address, balances)
        for listener in list(self._listeners):
            listener(address, dict(balances))
