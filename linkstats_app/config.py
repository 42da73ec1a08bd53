from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Application
    app_name: str = "LinkStats"
    app_version: str = "1.0.0"
    secret_key: str = "your-secret-key-here-change-in-production"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Database (mapping store)
    database_url: str = "sqlite:///./linkstats.db"

    # Aliases
    base_url: str = "http://127.0.0.1:8000"
    alias_length: int = 8
    custom_alias_min_length: int = 3
    custom_alias_max_length: int = 30

    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    url_cache_ttl: int = 6 * 60 * 60  # alias -> destination
    analytics_cache_ttl: int = 60 * 60  # per-alias analytics
    topic_cache_ttl: int = 30 * 60
    overall_cache_ttl: int = 30 * 60
    analytics_window_days: int = 7

    # Queue settings
    queue_backend: str = "redis_streams"  # Options: "redis_streams", "memory"
    queue_name: str = "url_visits"
    queue_consumer_group: str = "visit_workers"
    queue_batch_size: int = 100
    queue_block_ms: int = 1000
    embedded_worker: bool = True  # Run the visit worker inside the API process

    # Visit storage settings (event store)
    visit_storage_backend: str = "sqlite"  # Options: "sqlite"
    visit_storage_sqlite_path: str = "analytics.db"

    # Geolocation
    geo_lookup_enabled: bool = True
    geo_lookup_url: str = "http://ip-api.com/json"
    geo_lookup_timeout: float = 2.0

    # Auth
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Rate limiting
    rate_limit_enabled: bool = True
    shorten_rate_limit: str = "10 per 15 minutes"

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
