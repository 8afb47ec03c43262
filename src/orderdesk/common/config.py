"""OrderDesk configuration via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class OrderDeskSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ORDERDESK_")

    environment: str = "development"

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/orderdesk.db"
    db_echo: bool = False

    # API
    api_title: str = "OrderDesk"
    api_version: str = "0.1.0"
    api_prefix: str = "/api"
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Outbound webhooks
    webhook_timeout_seconds: float = 10.0  # per request, connect + read

    # Pagination
    default_page_size: int = 10
    max_page_size: int = 100

    # Load demo customers, products and orders into an empty database at startup
    seed_on_startup: bool = False


@lru_cache
def get_settings() -> OrderDeskSettings:
    return OrderDeskSettings()
