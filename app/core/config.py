from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Базовые настройки релея; переопределяются через переменные окружения."""

    environment: str = "development"
    log_level: str = "INFO"

    meta_pixel_id: str = ""
    meta_access_token: str = ""
    meta_api_version: str = "v19.0"
    meta_graph_url: str = "https://graph.facebook.com"
    meta_timeout_seconds: float = 10.0
    meta_test_event_code: Optional[str] = None
    compression_threshold_bytes: int = 2048

    dedup_ttl_seconds: float = 5 * 60
    dedup_max_size: int = 10_000
    rate_limit_requests: int = 30
    rate_limit_window_seconds: float = 60.0
    rate_limit_max_addresses: int = 10_000
    cache_cleanup_interval_seconds: int = 60

    allowed_origins: List[str] = ["http://localhost:3000"]
    default_event_name: str = "Lead"
    default_action_source: str = "website"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
