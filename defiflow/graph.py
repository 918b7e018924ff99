"""In-memory working copy of a workflow graph.

Edges are indexed by source and by target so that adjacency queries do not
scan the whole edge collection. Removing a node drops every edge touching it
before returning, so the graph never holds a dangling edge.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from .errors import DuplicateNodeError, InvalidEdgeError, NodeNotFoundError
from .models import Edge, Node, NodeKind, Workflow

logger = logging.getLogger(__name__)


class WorkflowGraph:
    def __init__(self, nodes: Iterable[Node] = (), edges: Iterable[Edge] = ()) -> None:
        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, Edge] = {}
        self._outgoing: dict[str, list[Edge]] = {}
        self._incoming: dict[str, list[Edge]] = {}
        for node in nodes:
            self.add_node(node)
        for edge in edges:
            self.add_edge(edge)

    @classmethod
    def from_workflow(cls, workflow: Workflow) -> "WorkflowGraph":
        return cls(
            [node.model_copy(deep=True) for node in workflow.nodes],
            [edge.model_copy() for edge in workflow.edges],
        )

    @classmethod
    def from_payload(cls, nodes: list[dict[str, Any]], edges: list[dict[str, Any]]) -> "WorkflowGraph":
        return cls(
            [Node.model_validate(item) for item in nodes],
            [Edge.model_validate(item) for item in edges],
        )

    def to_payload(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "nodes": [node.model_dump(by_alias=True) for node in self._nodes.values()],
            "edges": [edge.model_dump(by_alias=True) for edge in self._edges.values()],
        }

    # ---- Nodes ----

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def add_node(self, node: Node) -> Node:
        if node.id in self._nodes:
            raise DuplicateNodeError(f"Node id already exists: {node.id}")
        self._nodes[node.id] = node
        self._outgoing[node.id] = []
        self._incoming[node.id] = []
        return node

    def remove_node(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(f"Unknown node: {node_id}")

        touching = {edge.id for edge in self._outgoing[node_id]}
        touching.update(edge.id for edge in self._incoming[node_id])
        for edge_id in touching:
            self.remove_edge(edge_id)

        del self._outgoing[node_id]
        del self._incoming[node_id]
        del self._nodes[node_id]
        if touching:
            logger.debug("Removed node %s with %d attached edge(s)", node_id, len(touching))
        return node

    def update_node(
        self,
        node_id: str,
        *,
        label: str | None = None,
        config: dict[str, Any] | None = None,
        condition: str | None = None,
    ) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(f"Unknown node: {node_id}")
        if label is not None:
            node.label = label
        if config:
            node.config.update(config)
        if condition is not None:
            node.condition = condition
        return node

    def nodes_of_kind(self, kind: NodeKind) -> list[Node]:
        return [node for node in self._nodes.values() if node.kind == kind]

    def start_nodes(self) -> list[Node]:
        return [node for node in self._nodes.values() if node.is_start]

    # ---- Edges ----

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    def add_edge(self, edge: Edge) -> Edge:
        if edge.source not in self._nodes:
            raise InvalidEdgeError(f"Edge {edge.id} references unknown source node: {edge.source}")
        if edge.target not in self._nodes:
            raise InvalidEdgeError(f"Edge {edge.id} references unknown target node: {edge.target}")
        if edge.id in self._edges:
            raise InvalidEdgeError(f"Edge id already exists: {edge.id}")
        self._edges[edge.id] = edge
        self._outgoing[edge.source].append(edge)
        self._incoming[edge.target].append(edge)
        return edge

    def connect(
        self,
        source: str,
        target: str,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> Edge:
        return self.add_edge(
            Edge(source=source, target=target, source_handle=source_handle, target_handle=target_handle)
        )

    def remove_edge(self, edge_id: str) -> Edge | None:
        edge = self._edges.pop(edge_id, None)
        if edge is None:
            return None
        self._outgoing[edge.source].remove(edge)
        self._incoming[edge.target].remove(edge)
        return edge

    def outgoing_edges(self, node_id: str) -> list[Edge]:
        return list(self._outgoing.get(node_id, ()))

    def incoming_edges(self, node_id: str) -> list[Edge]:
        return list(self._incoming.get(node_id, ()))
