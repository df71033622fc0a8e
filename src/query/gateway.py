"""
Query Gateway: tenant-scoped, read-only ad-hoc Cypher.

A caller-supplied query is
  1. rejected if its text contains a write or admin keyword anywhere,
  2. rewritten line by line so every MATCH/WHERE is scoped to the caller's
     project,
  3. capped at ``max_results`` records,
  4. run in a read transaction with ``$projectId`` bound.

The rewrite is textual, not a parser: one clause per line is assumed, and
nested sub-queries or several clauses on one line are not scoped reliably.
"""

import logging
import re
from typing import Any

from src.query.config import QuerySettings
from src.query.projector import GraphData, ResultProjector
from src.shared.database import Neo4jHandler
from src.shared.exceptions import QueryAccessDeniedError, QueryExecutionError

logger = logging.getLogger("query.gateway")

# Blocks writes and admin procedures anywhere in the text, even inside string literals.
_FORBIDDEN_PATTERN = re.compile(
    r"\b(create|merge|delete|set|drop|remove)\b"
    r"|\bcall\b.*\bdbms\b",
    re.IGNORECASE | re.DOTALL,
)

_MATCH_LINE = re.compile(r"^\s*(?:OPTIONAL\s+)?MATCH\b", re.IGNORECASE)
_MATCH_VARIABLE = re.compile(r"\bMATCH\s*(?:\w+\s*=\s*)?\(\s*(\w+)", re.IGNORECASE)
_MATCH_KEYWORD = re.compile(r"\bMATCH\b", re.IGNORECASE)
# Any node or relationship variable in a pattern: (b:Block), [r:BODY]
_PATTERN_VARIABLE = re.compile(r"[(\[]\s*([A-Za-z_]\w*)")
_WHERE_LINE = re.compile(r"^(\s*)WHERE\s+(.*?)\s*$", re.IGNORECASE | re.DOTALL)
_WHERE_VARIABLE = re.compile(r"^\s*WHERE\s+(?:NOT\s+)?(?:\w+\s*\(\s*)?([A-Za-z_]\w*)", re.IGNORECASE)
_TRAILING_LIMIT = re.compile(r"\s*\bLIMIT\s+(\d+)\s*;?\s*$", re.IGNORECASE)

PROJECT_PARAM = "projectId"


def tenant_condition(variable: str) -> str:
    return f"{variable}.projectId IS NOT NULL AND {variable}.projectId = ${PROJECT_PARAM}"


def validate_query(query: str) -> None:
    """Raise QueryAccessDeniedError if the query contains a forbidden keyword."""
    match = _FORBIDDEN_PATTERN.search(query)
    if match:
        logger.warning("Rejected query containing %r", match.group(0))
        raise QueryAccessDeniedError(
            "Access denied: queries may not create, merge, delete, set, drop, "
            "remove or call dbms procedures."
        )


def _match_variable(line: str) -> str:
    found = _MATCH_VARIABLE.search(line)
    if found:
        return found.group(1)
    keyword = _MATCH_KEYWORD.search(line)
    found = _PATTERN_VARIABLE.search(line, keyword.end()) if keyword else None
    if found is None:
        logger.warning("Rejected unscoped pattern %r", line.strip())
        raise QueryAccessDeniedError(
            "Access denied: every MATCH pattern must bind a variable so it can be "
            "scoped to the project."
        )
    return found.group(1)


def inject_project_filter(query: str) -> str:
    """Scope every MATCH and WHERE line of ``query`` to ``$projectId``.

    * A MATCH line gets a new WHERE line for its leading node variable (or the
      first variable bound anywhere in its pattern), unless the next line is
      already a WHERE.
    * A WHERE line has the tenant condition AND-ed onto its predicate, for the
      variable the predicate starts with (or the last matched variable).

    Raises:
        QueryAccessDeniedError: If a MATCH pattern binds no variable, since it
            could not be scoped.
    """
    lines = query.split("\n")
    rewritten: list[str] = []
    last_match_variable: str | None = None

    for index, line in enumerate(lines):
        where = _WHERE_LINE.match(line)
        if where:
            found = _WHERE_VARIABLE.match(line)
            variable = found.group(1) if found else last_match_variable
            if variable is None:
                rewritten.append(line)
            else:
                indent, predicate = where.groups()
                rewritten.append(f"{indent}WHERE ({predicate}) AND {tenant_condition(variable)}")
            continue

        rewritten.append(line)
        if not _MATCH_LINE.match(line):
            continue

        last_match_variable = _match_variable(line)

        next_line = lines[index + 1] if index + 1 < len(lines) else ""
        if not _WHERE_LINE.match(next_line):
            rewritten.append(f"WHERE {tenant_condition(last_match_variable)}")

    return "\n".join(rewritten)


def apply_result_cap(query: str, max_results: int) -> str:
    """Replace any trailing LIMIT with one that never exceeds ``max_results``."""
    limit = max_results
    trailing = _TRAILING_LIMIT.search(query)
    if trailing:
        limit = min(int(trailing.group(1)), max_results)
        query = query[:trailing.start()]
    return f"{query.rstrip().rstrip(';')}\nLIMIT {limit}"


def rewrite_query(query: str, max_results: int = 150) -> str:
    """Validate, scope and cap a query. Does not touch the store."""
    validate_query(query)
    return apply_result_cap(inject_project_filter(query.strip()), max_results)


class QueryGateway:
    """Read-only, project-scoped query execution."""

    def __init__(
        self,
        handler: Neo4jHandler,
        settings: QuerySettings | None = None,
        projector: ResultProjector | None = None,
    ):
        self._handler = handler
        self._settings = settings or QuerySettings()
        self._projector = projector or ResultProjector()

    async def execute(self, project_id: str, query: str) -> list[list[Any]]:
        """Run ``query`` for ``project_id`` and return the raw records.

        Raises:
            QueryAccessDeniedError: If the query text contains a forbidden keyword.
            QueryExecutionError: For any other failure (syntax, connectivity, ...).
        """
        cypher = rewrite_query(query, self._settings.max_results)
        logger.info("Executing query for project %s:\n%s", project_id, cypher)
        try:
            return await self._handler.execute_read(cypher, {PROJECT_PARAM: project_id})
        except Exception as e:
            logger.error("Query failed for project %s: %s", project_id, e)
            raise QueryExecutionError(f"Query execution failed: {e}") from e

    async def query(self, project_id: str, query: str) -> GraphData:
        """Run ``query`` and project the result into nodes and edges."""
        rows = await self.execute(project_id, query)
        return self._projector.project(rows)
