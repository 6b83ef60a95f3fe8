"""Application configuration using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # API protection
    api_keys: str = "test-key-123,pro-user-456"
    rate_limit_requests: int = 20
    rate_limit_window_seconds: int = 60

    # Notifications
    webhook_url: str = ""
    webhook_payload_key: str = "text"  # "content" for Discord webhooks
    webhook_timeout_seconds: float = 10.0
    notification_queue_size: int = 100

    # Proxies (comma separated, one is picked per browser session)
    proxy_list: str = ""

    # Persistence
    store_backend: str = "json"  # "json" or "sql"
    data_file: str = "db.json"
    database_url: str = "sqlite+aiosqlite:///shopzap.db"

    # Scheduler
    scheduler_timezone: str = "Asia/Kolkata"
    scheduler_misfire_grace_seconds: int = 300

    # Rendering
    headless: bool = True
    max_concurrent_pages: int = 4
    navigation_timeout_seconds: int = 30
    selector_timeout_ms: int = 3000  # Wait per field locator before giving up

    # Monitoring
    history_limit: int = 5
    search_result_limit: int = 5

    # App Settings
    debug: bool = False
    log_level: str = "INFO"
    log_dir: str = ""
    app_host: str = "0.0.0.0"
    app_port: int = 3000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def api_key_list(self) -> list[str]:
        return [key.strip() for key in self.api_keys.split(",") if key.strip()]

    @property
    def proxy_endpoints(self) -> list[str]:
        return [proxy.strip() for proxy in self.proxy_list.split(",") if proxy.strip()]


settings = Settings()
