"""
Custom exception hierarchy.

All errors inherit from ServiceError so they can be caught
uniformly at the gateway or job level.
"""


class ServiceError(Exception):
    """Base exception for all errors raised by this package."""

    def __init__(self, message: str, component: str = "unknown"):
        self.component = component
        self.message = message
        super().__init__(f"[{component}] {message}")


class PersistenceError(ServiceError):
    """A node or edge chunk could not be written. Earlier chunks stay committed."""

    def __init__(self, message: str):
        super().__init__(message, component="persister")


class GraphLoadError(ServiceError):
    """An exported program graph could not be turned into program nodes."""

    def __init__(self, message: str):
        super().__init__(message, component="loader")


class QueryError(ServiceError):
    """Errors raised by the query gateway."""

    def __init__(self, message: str):
        super().__init__(message, component="query")


class QueryAccessDeniedError(QueryError):
    """The query text contains a forbidden keyword."""
    pass


class QueryExecutionError(QueryError):
    """The rewritten query failed for any other reason."""
    pass


class DatabaseConnectionError(ServiceError):
    """Failed to connect to Neo4j."""

    def __init__(self, message: str):
        super().__init__(message, component="database")
