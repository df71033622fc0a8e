"""
Persistence pipeline for one project.

Clears the project's previous graph, writes the new one, and reads back
the variables that were tagged as tracked.
"""

import logging
import time
from typing import Any, Sequence

from src.cpg.config import PersistenceSettings
from src.cpg.models import ProgramNode
from src.cpg.persister import TRACKED_VARIABLE, GraphPersister
from src.cpg.relationships import RelationshipCollector, gather_nodes
from src.shared.database import Neo4jHandler

logger = logging.getLogger("cpg.pipeline")

_TRACKED_VARIABLES = f"""
MATCH (n:{TRACKED_VARIABLE} {{projectId: $projectId}})
RETURN DISTINCT n.name
ORDER BY n.name
"""


class CpgPipeline:
    """Runs a full persistence pass for a project."""

    def __init__(self, handler: Neo4jHandler, settings: PersistenceSettings | None = None):
        self._handler = handler
        self._persister = GraphPersister(handler, settings)
        self._collector = RelationshipCollector()

    @property
    def persister(self) -> GraphPersister:
        return self._persister

    async def persist_graph(
        self,
        project_id: str,
        nodes: Sequence[ProgramNode],
        clear: bool = True,
    ) -> dict[str, Any]:
        """Replace the project's stored graph with ``nodes`` and what they reference.

        Returns:
            Counts of persisted nodes and relationships and the pass duration.

        Raises:
            PersistenceError: If a chunk fails; the stored graph may be partial.
        """
        started = time.perf_counter()
        if clear:
            await self._persister.clear_project(project_id)

        selection = gather_nodes(nodes)
        logger.info(
            "Persisting %d nodes: analysis nodes (%d), referenced nodes (%d)",
            len(selection), len(nodes), len(selection) - len(nodes),
        )

        ids = await self._persister.persist_nodes(selection, project_id)
        records = self._collector.collect(selection, ids)
        edges = await self._persister.persist_edges(records, project_id)

        duration = round(time.perf_counter() - started, 3)
        logger.info(
            "Persisted %d nodes and %d relationships for project %s in %.3fs",
            len(ids), edges, project_id, duration,
        )
        return {"nodes": len(ids), "relationships": edges, "duration_seconds": duration}

    async def tracked_variables(self, project_id: str) -> list[str]:
        """Names of the project's variables tagged as tracked."""
        rows = await self._handler.execute_read(_TRACKED_VARIABLES, {"projectId": project_id})
        return [row[0] for row in rows if row and row[0] is not None]
