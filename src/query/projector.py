"""
Result projection into the generic node/edge model used by the graph view.
"""

from typing import Any, Iterable

from neo4j.graph import Node, Path, Relationship
from pydantic import BaseModel, ConfigDict, Field

from src.cpg.models import NODE_KINDS
from src.cpg.persister import MAIN_FUNCTION, TRACKED_VARIABLE

GENERIC_LABEL = "Node"

# Extra labels the persister attaches; they outrank the node kind.
TAG_LABELS = (TRACKED_VARIABLE, MAIN_FUNCTION)


def _label_depths() -> dict[str, int]:
    """Depth of each kind label in the node hierarchy (Node = 1, Block = 3, ...)."""
    depths: dict[str, int] = {}
    for kind in NODE_KINDS.values():
        for depth, label in enumerate(kind.LABELS, 1):
            depths.setdefault(label, depth)
    return depths


LABEL_DEPTH = _label_depths()


class GenericNode(BaseModel):
    id: str
    label: str
    labels: list[str] = Field(default_factory=list)
    title: dict[str, str] = Field(default_factory=dict)


class GenericEdge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    from_: str = Field(..., alias="from")
    to: str
    label: str
    title: dict[str, str] = Field(default_factory=dict)


class GraphData(BaseModel):
    nodes: list[GenericNode] = Field(default_factory=list)
    edges: list[GenericEdge] = Field(default_factory=list)


def _stringify(properties: Iterable[tuple[str, Any]]) -> dict[str, str]:
    return {str(k): "" if v is None else str(v) for k, v in properties}


def primary_label(labels: list[str]) -> str:
    """Most specific label of a stored node.

    A persister tag wins, then the deepest known node kind. Unknown labels
    fall back to the first label that is not the generic supertype.
    """
    for tag in TAG_LABELS:
        if tag in labels:
            return tag
    kinds = [label for label in labels if label in LABEL_DEPTH and label != GENERIC_LABEL]
    if kinds:
        return max(kinds, key=lambda label: (LABEL_DEPTH[label], label))
    for label in labels:
        if label != GENERIC_LABEL:
            return label
    return labels[0] if labels else GENERIC_LABEL


class ResultProjector:
    """Flattens raw query results into deduplicated nodes and edges."""

    def project(self, rows: Iterable[Iterable[Any]]) -> GraphData:
        """Visit every value of every row.

        Paths contribute their nodes and relationships, lists are flattened,
        scalars are ignored. Each node and edge appears once.
        """
        data = GraphData()
        seen_nodes: set[str] = set()
        seen_edges: set[str] = set()
        for row in rows:
            for value in row:
                self._visit(value, data, seen_nodes, seen_edges)
        return data

    def _visit(self, value: Any, data: GraphData, seen_nodes: set[str], seen_edges: set[str]) -> None:
        if isinstance(value, Node):
            node_id = str(value.element_id)
            if node_id in seen_nodes:
                return
            seen_nodes.add(node_id)
            labels = sorted(value.labels)
            data.nodes.append(GenericNode(
                id=node_id,
                label=primary_label(labels),
                labels=labels,
                title=_stringify(value.items()),
            ))
        elif isinstance(value, Relationship):
            edge_id = str(value.element_id)
            if edge_id in seen_edges:
                return
            seen_edges.add(edge_id)
            data.edges.append(GenericEdge(
                id=edge_id,
                from_=str(value.start_node.element_id),
                to=str(value.end_node.element_id),
                label=value.type,
                title=_stringify(value.items()),
            ))
        elif isinstance(value, Path):
            for node in value.nodes:
                self._visit(node, data, seen_nodes, seen_edges)
            for rel in value.relationships:
                self._visit(rel, data, seen_nodes, seen_edges)
        elif isinstance(value, (list, tuple)):
            for item in value:
                self._visit(item, data, seen_nodes, seen_edges)
