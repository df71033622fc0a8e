"""
Base configuration for all services.

Uses Pydantic Settings for environment-based configuration.
Each component extends StoreSettings with its own prefix.
"""

from pydantic_settings import BaseSettings


class StoreSettings(BaseSettings):
    """Settings shared by every component that talks to the graph store."""

    service_name: str = "base"

    # Neo4j connection. NEO4J_URI wins over NEO4J_HOST when both are set.
    neo4j_uri: str = ""
    neo4j_host: str = "localhost"
    neo4j_port: int = 7687
    neo4j_user: str = "neo4j"
    neo4j_password: str = "password"
    neo4j_database: str = "neo4j"

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def resolved_neo4j_uri(self) -> str:
        """Return the bolt URI, built from host and port unless given explicitly."""
        return self.neo4j_uri or f"bolt://{self.neo4j_host}:{self.neo4j_port}"
