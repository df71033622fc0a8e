"""Query gateway configuration."""

from src.shared.config import StoreSettings


class QuerySettings(StoreSettings):
    """Settings specific to ad-hoc project queries."""

    service_name: str = "query"
    max_results: int = 150

    class Config(StoreSettings.Config):
        env_prefix = "QUERY_"
