"""Application configuration using Pydantic settings."""
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./.data/ledger.db"
    database_echo: bool = False
    auto_migrate: bool = True

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = True
    debug: bool = True

    # CORS
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Logging
    log_level: str = "INFO"

    # Stock quote provider ("stub" or "live")
    stock_provider: str = "stub"
    stock_api_base_url: str = ""
    stock_api_key: str = ""
    stock_api_timeout_seconds: int = 10

    # Valuation
    quote_timeout_seconds: float = 5.0
    recent_transactions_limit: int = 10

    # OpenTelemetry
    otel_enabled: bool = False
    otel_service_name: str = "PortfolioLedger.API"
    otel_service_version: str = "0.1.0"
    otel_exporter_otlp_endpoint: str = ""
    otlp_endpoint: str = "http://localhost:4317"
    otel_insecure: bool = True
    otel_metric_export_interval_ms: int = 60000

    @property
    def async_database_url(self) -> str:
        """Convert postgresql:// to postgresql+asyncpg:// for async operations."""
        if self.database_url.startswith("postgresql://"):
            return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.database_url

    @property
    def is_sqlite(self) -> bool:
        return self.async_database_url.startswith("sqlite")

    @property
    def is_live_provider_configured(self) -> bool:
        """Check if the live quote provider has its endpoint and key."""
        return bool(self.stock_api_base_url and self.stock_api_key)

    @property
    def resolved_otlp_endpoint(self) -> str:
        """OTEL_EXPORTER_OTLP_ENDPOINT when set, otherwise OTLP_ENDPOINT."""
        return self.otel_exporter_otlp_endpoint or self.otlp_endpoint


# Global settings instance
settings = Settings()
