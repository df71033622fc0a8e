"""
Neo4j Connection Handler

Centralised Neo4j driver management.
Reads the connection from StoreSettings (environment or .env) and exposes an
async driver shared by the persister, the query gateway and the pipeline.
"""

import logging
from typing import Any

from dotenv import load_dotenv
from neo4j import AsyncGraphDatabase, AsyncDriver, AsyncManagedTransaction

from src.shared.config import StoreSettings
from src.shared.exceptions import DatabaseConnectionError

load_dotenv()

logger = logging.getLogger("cpg.neo4j_handler")


class Neo4jHandler:
    """
    Manages a single async Neo4j driver.

    Usage
    -----
    handler = Neo4jHandler()          # reads NEO4J_* from env / .env
    await handler.connect()
    rows = await handler.execute_read("MATCH (n) RETURN n LIMIT 5")
    await handler.close()

    The handler can also be used as an async context-manager:

        async with Neo4jHandler() as handler:
            await handler.execute_write(...)
    """

    def __init__(
        self,
        uri: str | None = None,
        username: str | None = None,
        password: str | None = None,
        database: str | None = None,
        settings: StoreSettings | None = None,
    ):
        settings = settings or StoreSettings()
        self._uri = uri or settings.resolved_neo4j_uri
        self._username = username or settings.neo4j_user
        self._password = password or settings.neo4j_password
        self._database = database or settings.neo4j_database
        self._driver: AsyncDriver | None = None

    # ─── Lifecycle ──────────────────────────────────────────

    async def connect(self) -> "Neo4jHandler":
        """Create the async driver and verify connectivity.

        Returns:
            Self for method chaining.

        Raises:
            DatabaseConnectionError: If the store cannot be reached.
        """
        if self._driver is not None:
            return self

        self._driver = AsyncGraphDatabase.driver(
            self._uri, auth=(self._username, self._password)
        )
        try:
            await self._driver.verify_connectivity()
            logger.info("Connected to Neo4j at %s (db=%s)", self._uri, self._database)
        except Exception as e:
            logger.error("Failed to connect to Neo4j at %s", self._uri)
            await self._driver.close()
            self._driver = None
            raise DatabaseConnectionError(f"cannot reach {self._uri}: {e}") from e
        return self

    async def close(self) -> None:
        """Close the underlying driver."""
        if self._driver:
            await self._driver.close()
            self._driver = None
            logger.info("Neo4j connection closed")

    async def __aenter__(self) -> "Neo4jHandler":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ─── Properties ─────────────────────────────────────────

    @property
    def driver(self) -> AsyncDriver:
        """Return the raw async driver.

        Raises:
            RuntimeError: If handler is not connected (call connect() first).
        """
        if self._driver is None:
            raise RuntimeError("Neo4jHandler is not connected; call connect() first")
        return self._driver

    @property
    def database(self) -> str:
        """Return the configured database name."""
        return self._database

    @property
    def uri(self) -> str:
        """Return the configured Neo4j URI."""
        return self._uri

    # ─── Query Helpers ──────────────────────────────────────

    async def run(self, query: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Execute a Cypher query in an auto-commit transaction and return dicts."""
        async with self.driver.session(database=self._database) as session:
            result = await session.run(query, params or {})
            return [record.data() async for record in result]

    async def execute_write(self, query: str, params: dict[str, Any] | None = None) -> None:
        """Run one statement inside a managed write transaction.

        The transaction commits when the statement has been fully consumed;
        any failure rolls back this transaction only.
        """
        async def _work(tx: AsyncManagedTransaction) -> None:
            result = await tx.run(query, params or {})
            await result.consume()

        async with self.driver.session(database=self._database) as session:
            await session.execute_write(_work)

    async def execute_read(
        self, query: str, params: dict[str, Any] | None = None
    ) -> list[list[Any]]:
        """Run one statement inside a managed read transaction.

        Returns:
            One list of raw driver values per record (nodes, relationships,
            paths and primitives are left untouched).
        """
        async def _work(tx: AsyncManagedTransaction) -> list[list[Any]]:
            result = await tx.run(query, params or {})
            return [record.values() async for record in result]

        async with self.driver.session(database=self._database) as session:
            return await session.execute_read(_work)

    async def verify(self) -> bool:
        """Quick health-check: returns True if the database is reachable."""
        if self._driver is None:
            return False
        try:
            await self._driver.verify_connectivity()
            return True
        except Exception:
            return False
