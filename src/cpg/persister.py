"""
Graph Persister

Writes a program graph into the shared Neo4j store for one project.

Nodes get a fresh id per persistence pass (the ids handed over by the
analysis are not unique), a demangled name, the project id and, for a few
heuristically interesting nodes, an extra label. Nodes and relationships
are written in fixed-size chunks, one write transaction per chunk. A
failing chunk aborts the pass but does not roll back earlier chunks.
"""

import logging
import re
import uuid
from typing import Any, Iterable, Iterator, Sequence

from src.cpg.config import PersistenceSettings
from src.cpg.demangle import demangle
from src.cpg.models import (
    CallExpression,
    FunctionDeclaration,
    FunctionScope,
    ProgramNode,
    VariableDeclaration,
)
from src.cpg.relationships import FILTERED_EDGES, RelationshipRecord
from src.shared.database import Neo4jHandler
from src.shared.exceptions import PersistenceError
from src.shared.logging import log_duration

logger = logging.getLogger("cpg.persister")

# Placeholder types the analysis emits for anything it could not resolve.
FILTERED_NODES = frozenset({"UnknownType"})

# Functions from the runtime and standard library are never scanned for tracked variables.
FILTERED_DBG_DECLARE_FUNCS = (
    "std::",
    "core::",
    "alloc::",
    "proc_macro::",
    "std_detect::",
    "test::",
    "__rust",
    "__CxxFrame",
    "llvm.",
    "literal_",
)

DBG_DECLARE = "llvm.dbg.declare"
TRACKED_VARIABLE = "TrackedVariable"
MAIN_FUNCTION = "MainFunctionDeclaration"
MAIN_SUFFIX = "::main"

# LLVM local identifier, e.g. %x, %_5, %self.dbg.spill
_REGISTER = re.compile(r"%([-\w$.]+)")

_CREATE_NODES = """
UNWIND $props AS row
CALL apoc.create.node(row.labels, row.properties) YIELD node
RETURN count(node)
"""

_CREATE_RELATIONSHIPS = """
UNWIND $props AS row
MATCH (s:Node {id: row.startId, projectId: $projectId})
MATCH (e:Node {id: row.endId, projectId: $projectId})
CALL apoc.create.relationship(s, row.type, row.properties, e) YIELD rel
RETURN count(rel)
"""

_SCHEMA = [
    "CREATE INDEX node_id IF NOT EXISTS FOR (n:Node) ON (n.id)",
    "CREATE INDEX node_project IF NOT EXISTS FOR (n:Node) ON (n.projectId)",
]

_CLEAR_PROJECT = "MATCH (n {projectId: $projectId}) DETACH DELETE n"


# ─── Batch bookkeeping ─────────────────────────────────────


class NodeArena:
    """Assigns every node of one persistence batch a dense slot index.

    All per-pass maps (persisted ids, pending tags) are keyed by slot.
    The arena holds the nodes for the whole pass, so slots stay valid.
    """

    def __init__(self, nodes: Iterable[ProgramNode]):
        self.nodes: list[ProgramNode] = list(nodes)
        self._slots = {id(node): slot for slot, node in enumerate(self.nodes)}

    def slot(self, node: ProgramNode) -> int | None:
        return self._slots.get(id(node))

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[ProgramNode]:
        return iter(self.nodes)


class PersistedIds:
    """ProgramNode -> persisted id mapping for one pass."""

    def __init__(self, arena: NodeArena):
        self._arena = arena
        self._ids: list[str | None] = [None] * len(arena)

    def assign(self, slot: int) -> str:
        persisted_id = str(uuid.uuid4())
        self._ids[slot] = persisted_id
        return persisted_id

    def get(self, node: ProgramNode) -> str | None:
        slot = self._arena.slot(node)
        return None if slot is None else self._ids[slot]

    def __getitem__(self, node: ProgramNode) -> str:
        persisted_id = self.get(node)
        if persisted_id is None:
            raise KeyError(node.name)
        return persisted_id

    def __contains__(self, node: ProgramNode) -> bool:
        return self.get(node) is not None

    def __len__(self) -> int:
        return sum(1 for i in self._ids if i is not None)

    def items(self) -> Iterator[tuple[ProgramNode, str]]:
        for node, persisted_id in zip(self._arena.nodes, self._ids):
            if persisted_id is not None:
                yield node, persisted_id

    def values(self) -> list[str]:
        return [i for i in self._ids if i is not None]


# ─── Naming & tagging ──────────────────────────────────────


def demangled_name(node: ProgramNode) -> str:
    """Readable name of a node. Function scopes borrow their function's name."""
    if isinstance(node, FunctionScope) and node.ast_node is not None:
        return demangle(node.ast_node.name)
    return demangle(node.name)


def declared_register(call: CallExpression) -> str | None:
    """Register named by a ``llvm.dbg.declare`` call, e.g. ``x`` for ``metadata ptr %x``.

    The analysis does not resolve the metadata argument, so the register is
    read from the argument's source text.
    """
    if not call.arguments:
        return None
    code = call.arguments[0].end.code
    if not code:
        return None
    registers = _REGISTER.findall(code)
    return registers[-1] if registers else None


def find_tracked_variables(function: FunctionDeclaration) -> Iterator[VariableDeclaration]:
    """Variables declared in the same basic block as a debug-declare call naming them."""
    for block in function.blocks():
        own = block.own_nodes()
        for node in own:
            if not (isinstance(node, CallExpression) and node.name == DBG_DECLARE):
                continue
            register = declared_register(node)
            if register is None:
                continue
            for candidate in own:
                if isinstance(candidate, VariableDeclaration) and candidate.local_name == register:
                    yield candidate
                    break


def is_tracked_function(name: str) -> bool:
    return not name.startswith(FILTERED_DBG_DECLARE_FUNCS)


# ─── Persister ─────────────────────────────────────────────


class GraphPersister:
    """Chunked writer for program graph nodes and relationships."""

    def __init__(self, handler: Neo4jHandler, settings: PersistenceSettings | None = None):
        self._handler = handler
        self._settings = settings or PersistenceSettings()

    async def clear_project(self, project_id: str) -> None:
        """Delete every node (and its relationships) belonging to a project."""
        await self._handler.execute_write(_CLEAR_PROJECT, {"projectId": project_id})
        logger.info("Cleared stored graph for project %s", project_id)

    async def ensure_schema(self) -> None:
        """Create the node id index. Must finish before relationships are matched."""
        for stmt in _SCHEMA:
            await self._handler.execute_write(stmt)

    async def persist_nodes(
        self,
        nodes: Sequence[ProgramNode],
        project_id: str,
    ) -> PersistedIds:
        """Write all non-filtered nodes and return their persisted ids.

        Raises:
            PersistenceError: If a chunk fails. Earlier chunks stay in the store.
        """
        arena = NodeArena(n for n in nodes if not FILTERED_NODES.intersection(n.labels))
        ids = PersistedIds(arena)
        tags = self._collect_tags(arena)
        chunk_size = self._settings.node_chunk_size

        logger.info(
            "Persisting %d nodes (%d filtered, %d tagged) for project %s",
            len(arena), len(nodes) - len(arena), len(tags), project_id,
        )

        for chunk_no, start in enumerate(range(0, len(arena), chunk_size)):
            slots = range(start, min(start + chunk_size, len(arena)))
            rows = [self._node_row(slot, arena, ids, tags, project_id) for slot in slots]
            try:
                with log_duration(logger, "Node chunk %d (%d nodes)", chunk_no, len(rows)):
                    await self._handler.execute_write(_CREATE_NODES, {"props": rows})
            except Exception as e:
                logger.error(
                    "Node chunk %d failed for project %s; %d nodes already committed",
                    chunk_no, project_id, start,
                )
                raise PersistenceError(
                    f"node chunk {chunk_no} failed after {start} nodes were written: {e}"
                ) from e

        return ids

    async def persist_edges(
        self,
        records: Sequence[RelationshipRecord],
        project_id: str,
    ) -> int:
        """Write relationships between already persisted nodes of the project.

        Returns:
            Number of relationship records submitted.

        Raises:
            PersistenceError: If the index or a chunk cannot be written.
        """
        records = [r for r in records if r.type not in FILTERED_EDGES]
        chunk_size = self._settings.edge_chunk_size

        try:
            await self.ensure_schema()
        except Exception as e:
            raise PersistenceError(f"could not create node id index: {e}") from e

        logger.info("Persisting %d relationships for project %s", len(records), project_id)

        for chunk_no, start in enumerate(range(0, len(records), chunk_size)):
            chunk = records[start:start + chunk_size]
            params = {
                "props": [r.to_params(project_id) for r in chunk],
                "projectId": project_id,
            }
            try:
                with log_duration(logger, "Relationship chunk %d (%d edges)", chunk_no, len(chunk)):
                    await self._handler.execute_write(_CREATE_RELATIONSHIPS, params)
            except Exception as e:
                logger.error(
                    "Relationship chunk %d failed for project %s; %d relationships already committed",
                    chunk_no, project_id, start,
                )
                raise PersistenceError(
                    f"relationship chunk {chunk_no} failed after {start} relationships were written: {e}"
                ) from e

        return len(records)

    # ─── Internals ─────────────────────────────────────────

    def _collect_tags(self, arena: NodeArena) -> dict[int, str]:
        """Pending extra label per slot. The first tag a node receives wins."""
        tags: dict[int, str] = {}
        for slot, node in enumerate(arena):
            if not isinstance(node, FunctionDeclaration):
                continue
            name = demangled_name(node)
            if name.endswith(MAIN_SUFFIX):
                tags.setdefault(slot, MAIN_FUNCTION)
            if not is_tracked_function(name):
                continue
            for variable in find_tracked_variables(node):
                variable_slot = arena.slot(variable)
                if variable_slot is not None:
                    tags.setdefault(variable_slot, TRACKED_VARIABLE)
        return tags

    @staticmethod
    def _node_row(
        slot: int,
        arena: NodeArena,
        ids: PersistedIds,
        tags: dict[int, str],
        project_id: str,
    ) -> dict[str, Any]:
        node = arena.nodes[slot]
        name = demangled_name(node)

        props = {k: v for k, v in node.persistable_properties().items() if v is not None}
        props["id"] = ids.assign(slot)
        props["name"] = name
        props["fullName"] = name
        props["localName"] = name
        props["projectId"] = project_id

        labels = list(node.labels)
        tag = tags.get(slot)
        if tag is not None:
            labels.append(tag)

        return {"labels": labels, "properties": props}
