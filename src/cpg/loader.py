"""
Graph Loader

Rebuilds the in-memory program graph from the JSON export written by the
analysis pass:

    {"nodes": [
        {"key": "f1", "kind": "FunctionDeclaration", "id": 7,
         "name": "_ZN4demo4main17h0123456789abcdefE", "code": "...",
         "properties": {"file": "main.ll"},
         "relationships": {
             "BODY": "b1",                                  # SINGLE
             "PARAMETERS": ["p1", "p2"],                    # NODES
             "EOG": [{"end": "b1", "properties": {}}]       # EDGES
         }}
    ]}

``key`` addresses a node within the file; ``id`` is the analysis identity
and may repeat.
"""

import json
import logging
from pathlib import Path
from typing import Any

from src.cpg.models import NODE_KINDS, Arity, Edge, ProgramNode
from src.shared.exceptions import GraphLoadError

logger = logging.getLogger("cpg.loader")


def load_graph(source: str | Path | dict[str, Any]) -> list[ProgramNode]:
    """Load an exported program graph.

    Args:
        source: Path to a JSON export, or the already parsed document.

    Returns:
        Program nodes in export order.

    Raises:
        GraphLoadError: On unreadable files, unknown node kinds, unknown
            relationship names or references to missing keys.
    """
    if isinstance(source, dict):
        document = source
    else:
        try:
            document = json.loads(Path(source).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise GraphLoadError(f"cannot read graph export {source}: {e}") from e

    entries = document.get("nodes")
    if not isinstance(entries, list):
        raise GraphLoadError("graph export has no 'nodes' list")

    by_key: dict[str, ProgramNode] = {}
    nodes: list[ProgramNode] = []
    for entry in entries:
        node = _build_node(entry)
        key = str(entry.get("key", len(nodes)))
        if key in by_key:
            raise GraphLoadError(f"duplicate node key {key!r}")
        by_key[key] = node
        nodes.append(node)

    for entry, node in zip(entries, nodes):
        _link(node, entry.get("relationships") or {}, by_key)

    logger.info("Loaded %d program nodes", len(nodes))
    return nodes


def _build_node(entry: dict[str, Any]) -> ProgramNode:
    kind = entry.get("kind", "ProgramNode")
    cls = NODE_KINDS.get(kind)
    if cls is None:
        raise GraphLoadError(f"unknown node kind {kind!r}")
    return cls(
        id=int(entry.get("id", 0)),
        name=entry.get("name") or "",
        code=entry.get("code"),
        properties=dict(entry.get("properties") or {}),
    )


def _link(node: ProgramNode, relationships: dict[str, Any], by_key: dict[str, ProgramNode]) -> None:
    schema = {rel.name: rel for rel in node.RELATIONSHIPS}

    def resolve(key: Any) -> ProgramNode:
        try:
            return by_key[str(key)]
        except KeyError:
            raise GraphLoadError(f"{node.name or type(node).__name__} references missing node {key!r}") from None

    for name, value in relationships.items():
        rel = schema.get(name)
        if rel is None:
            raise GraphLoadError(f"{type(node).__name__} has no relationship {name!r}")

        if rel.arity is Arity.SINGLE:
            setattr(node, rel.attribute, None if value is None else resolve(value))
        elif rel.arity is Arity.NODES:
            setattr(node, rel.attribute, [resolve(k) for k in value])
        else:
            setattr(node, rel.attribute, [
                Edge(node, resolve(e["end"]), dict(e.get("properties") or {}))
                for e in value
            ])
