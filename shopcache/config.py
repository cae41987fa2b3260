"""Engine configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration — reads from environment / .env file."""

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    key_prefix: str = ""

    # Session reaper
    session_limit: int = 10_000_000
    reaper_batch_size: int = 100
    reaper_idle_seconds: float = 1.0
    full_session_cleanup: bool = False
    view_history_size: int = 25

    # Row cache scheduler
    row_poll_seconds: float = 0.05
    row_retry_backoff_seconds: float = 1.0
    row_retry_backoff_max_seconds: float = 30.0

    # Upstream inventory
    inventory_api_url: str = ""
    inventory_timeout_seconds: int = 10

    # Page cache
    page_cache_ttl: int = 300               # 5 minutes
    page_admission_threshold: int = 10000   # top-N most viewed items

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: str = "*"
    worker_join_timeout: float = 5.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def has_inventory_api(self) -> bool:
        return bool(self.inventory_api_url)

    @property
    def cors_origins(self) -> list[str]:
        if self.allowed_origins == "*":
            return ["*"]
        return [o.strip() for o in self.allowed_origins.split(",")]


settings = Settings()
