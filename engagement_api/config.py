"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from pydantic_settings import BaseSettings
from sqlalchemy.engine import URL


class Settings(BaseSettings):
    # ── PostgreSQL ─────────────────────────────────────────────────────────
    postgres_host: str = "postgres"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_database: str = "engagement"

    @property
    def postgres_url(self) -> URL:
        return URL.create(
            "postgresql+asyncpg",
            username=self.postgres_user,
            password=self.postgres_password or None,
            host=self.postgres_host,
            port=self.postgres_port,
            database=self.postgres_database,
        )

    # ── Connection pool ────────────────────────────────────────────────────
    pool_size: int = 10
    max_overflow: int = 5
    pool_timeout_seconds: float = 5.0     # wait for a free connection
    query_timeout_seconds: float = 10.0   # asyncpg command_timeout

    # ── HTTP ───────────────────────────────────────────────────────────────
    cors_allow_origins: list[str] = ["*"]
    # False → 500 responses carry a generic message instead of the DB error
    expose_store_errors: bool = True

    # ── Observability ──────────────────────────────────────────────────────
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "engagement-analytics-api"
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
