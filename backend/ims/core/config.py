"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Database - SQLite file by default, any SQLAlchemy URL works
    database_url: str = "sqlite:///./ims.db"
    database_echo: bool = False

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True

    # Inventory rules
    allow_negative_stock: bool = False  # Permit issuing more than is on hand
    default_asset_location: str = "Main Office"  # Location for assets created on receipt

    # Live collection sockets
    ws_max_connections_per_channel: int = 200

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Warn about development-only values when debug is off."""
        import warnings

        if not self.debug:
            if self.cors_origins == "*":
                warnings.warn(
                    "CORS_ORIGINS is '*' in production mode. Set explicit origins.",
                    UserWarning,
                    stacklevel=2,
                )
            if self.database_url.startswith("sqlite"):
                warnings.warn(
                    "SQLite database in production mode. Set DATABASE_URL to a server database.",
                    UserWarning,
                    stacklevel=2,
                )

        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list, filtering localhost in production."""
        if self.cors_origins == "*":
            return ["*"]

        origins = [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

        if not self.debug:
            localhost_patterns = ["localhost", "127.0.0.1", "0.0.0.0"]
            origins = [o for o in origins if not any(p in o for p in localhost_patterns)]

        return origins


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
