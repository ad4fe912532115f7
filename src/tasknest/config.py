"""Configuration management for TaskNest."""

import logging
import sys
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="TASKNEST_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Application
    app_name: str = "TaskNest"
    debug: bool = False
    log_level: str = "INFO"

    # Paths
    data_dir: Path = Path("data")

    # Database
    database_url: str = "sqlite+aiosqlite:///data/tasknest.db"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Authentication
    # Override TASKNEST_JWT_SECRET in every real deployment
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    token_expire_days: int = 7

    # Todo hierarchy
    max_tree_depth: int = 32  # Deepest allowed chain of nested todos

    # Rate limiting (requests per minute)
    rate_limit_enabled: bool = True
    rate_limit_default: str = "120/minute"
    rate_limit_auth: str = "10/minute"

    # CORS (Cross-Origin Resource Sharing)
    cors_enabled: bool = True
    cors_allow_origins: list[str] = []  # Empty = same-origin only; use ["*"] for any origin
    cors_allow_methods: list[str] = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    cors_allow_headers: list[str] = ["*"]
    cors_allow_credentials: bool = False
    cors_max_age: int = 600

    # Command line client
    api_url: str = "http://localhost:8000/api"
    token_file: Path = Path.home() / ".tasknest" / "token"

    def setup_directories(self) -> None:
        """Ensure required directories exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    settings.setup_directories()
    return settings


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the root logger."""
    if level is None:
        level = get_settings().log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
