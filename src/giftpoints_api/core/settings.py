from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./giftpoints.db"
    database_echo: bool = False
    # Server-side statement timeout applied to PostgreSQL connections
    database_statement_timeout_ms: int = 15_000

    # Internal API security (identity collaborator + operator tooling)
    internal_api_key: str = ""

    # Points ledger
    welcome_bonus_points: int = Field(1000, ge=0)
    points_history_default_limit: int = 20
    points_history_max_limit: int = 100

    # Email / verification settings
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    smtp_sender_email: str | None = None
    verification_email_subject: str = "Verify your Gift Platform account"
    frontend_url: str = "http://localhost:3000"

    # Tracing
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    tracing_console_export: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
