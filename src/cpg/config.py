"""Persistence pipeline configuration."""

from src.shared.config import StoreSettings


class PersistenceSettings(StoreSettings):
    """Settings specific to graph persistence."""

    service_name: str = "cpg"
    node_chunk_size: int = 10_000
    edge_chunk_size: int = 10_000

    class Config(StoreSettings.Config):
        env_prefix = "CPG_"
