"""Gateway configuration."""

from src.shared.config import StoreSettings


class GatewaySettings(StoreSettings):
    """Settings specific to the FastAPI Gateway."""

    service_name: str = "gateway"
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = ["*"]

    class Config(StoreSettings.Config):
        env_prefix = "GATEWAY_"
