"""Runtime configuration for storefront."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

DEFAULT_JWT_SECRET = "dev-only-jwt-secret-change-me-0123456789"

# Can be overridden via STOREFRONT_DATA_DIR environment variable
_default_data_dir = Path(__file__).parent.parent.parent / "data"


class Settings(BaseSettings):
    """Runtime configuration sourced from STOREFRONT_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["development", "test", "production"] = "development"
    host: str = "127.0.0.1"
    port: int = 4000
    frontend_url: str = "http://localhost:3000"
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    currency: str = "usd"
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""

    jwt_secret: str = DEFAULT_JWT_SECRET
    access_token_ttl_minutes: int = 15
    refresh_token_ttl_days: int = 7

    storage_backend: Literal["memory", "json"] = "memory"
    data_dir: Path = _default_data_dir
    seed_catalog: bool = True

    log_level: str = "INFO"
    log_json: bool = False

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @model_validator(mode="after")
    def _check_production_secrets(self) -> "Settings":
        if self.environment == "production" and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise ConfigError("STOREFRONT_JWT_SECRET must be set in production")
        return self


def load_settings() -> Settings:
    """Read settings from the environment and optional .env file."""
    return Settings()
