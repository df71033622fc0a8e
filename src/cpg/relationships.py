"""
Relationship collection.

Linearizes the relationships every node declares in its schema into flat
records that the persister can write in bulk.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol, Sequence

from src.cpg.models import Arity, ProgramNode

logger = logging.getLogger("cpg.relationships")

# Pure language-binding edges; every node has one and they carry no program structure.
FILTERED_EDGES = frozenset({"LANGUAGE"})


class IdLookup(Protocol):
    def get(self, node: ProgramNode) -> str | None: ...


@dataclass
class RelationshipRecord:
    """A relationship ready to be written, addressed by persisted node ids."""

    start_id: str
    end_id: str
    type: str
    properties: dict[str, Any] = field(default_factory=dict)

    def to_params(self, project_id: str) -> dict[str, Any]:
        return {
            "startId": self.start_id,
            "endId": self.end_id,
            "type": self.type,
            "properties": {**self.properties, "projectId": project_id},
        }


class RelationshipCollector:
    """Walks each node's relationship schema and emits RelationshipRecords."""

    def __init__(self, filtered_edges: Iterable[str] = FILTERED_EDGES):
        self._filtered = frozenset(filtered_edges)

    def collect(
        self,
        nodes: Sequence[ProgramNode],
        id_map: IdLookup,
    ) -> list[RelationshipRecord]:
        """Build one record per declared edge between two persisted nodes.

        Records whose type is filtered, or whose start or end node has no
        persisted id (filtered kinds, nodes outside the batch), are skipped.
        """
        records: list[RelationshipRecord] = []
        dangling = 0

        for node in nodes:
            for rel in node.RELATIONSHIPS:
                if rel.name in self._filtered:
                    continue
                value = getattr(node, rel.attribute)
                if value is None:
                    continue

                if rel.arity is Arity.EDGES:
                    pairs = [(edge.start, edge.end, edge.properties) for edge in value]
                elif rel.arity is Arity.NODES:
                    pairs = [(node, end, {}) for end in value if end is not None]
                else:
                    pairs = [(node, value, {})]

                for start, end, props in pairs:
                    start_id = id_map.get(start)
                    end_id = id_map.get(end)
                    if start_id is None or end_id is None:
                        dangling += 1
                        continue
                    records.append(RelationshipRecord(start_id, end_id, rel.name, dict(props)))

        if dangling:
            logger.debug("Skipped %d relationships to unpersisted nodes", dangling)
        return records


def connected_nodes(node: ProgramNode) -> list[ProgramNode]:
    """All nodes this node references through any schema relationship."""
    nodes: list[ProgramNode] = []
    for rel in node.RELATIONSHIPS:
        nodes.extend(node.relationship_targets(rel))
    return nodes


def gather_nodes(roots: Iterable[ProgramNode]) -> list[ProgramNode]:
    """The persistence selection: the given nodes plus every node they reference.

    Order is stable (given nodes first) and each node object appears once.
    """
    seen: set[int] = set()
    result: list[ProgramNode] = []
    roots = list(roots)

    for node in roots:
        if id(node) not in seen:
            seen.add(id(node))
            result.append(node)
    for node in roots:
        for other in connected_nodes(node):
            if id(other) not in seen:
                seen.add(id(other))
                result.append(other)
    return result
