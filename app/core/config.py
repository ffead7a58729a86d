"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma-separated origins. Empty = default list in app.main.
    cors_origins: str = ""

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_connect_timeout: int = 5

    # ===========================================
    # REDIS
    # ===========================================
    redis_url: str  # Required, no default

    # ===========================================
    # IDENTITY PROVIDER (hosted auth)
    # ===========================================
    auth_provider_url: str  # Required, no default
    auth_provider_anon_key: str  # Required, no default

    # ===========================================
    # ROLE CACHE
    # ===========================================
    role_cache_backend: str = "memory"  # memory | redis
    role_cache_ttl_seconds: int = 300  # 5 min

    # ===========================================
    # CATALOG / READER
    # ===========================================
    catalog_page_size_max: int = 100
    rating_min: int = 1
    rating_max: int = 10
    # Cap for read_chapters per (user, manhwa); oldest ids are dropped first.
    reading_max_read_chapters: int = 500
    reading_continue_limit: int = 8
    comment_max_length: int = 2000

    # ===========================================
    # INTERNAL SERVICES
    # ===========================================
    http_client_timeout: float = 10.0

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    request_id_header: str = "X-Request-Id"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("role_cache_backend")
    @classmethod
    def validate_role_cache_backend(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("memory", "redis"):
            raise ValueError("role_cache_backend must be 'memory' or 'redis'")
        return v

    @field_validator("auth_provider_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
