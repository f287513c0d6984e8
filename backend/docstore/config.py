from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

_BACKEND_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _BACKEND_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_title: str = "Document Store API"
    app_version: str = "0.1.0"
    app_env: str = "development"
    cors_origins: list[str] = ["*"]

    # Identity
    identity_field: str = "email"
    identity_collection: str = "users"
    hash_secret: str = "This is not a production server"

    # Seed data and rules (relative to backend directory)
    seed_data_dir: str = "data/seed"
    protected_data_file: str = "data/protected.json"
    rules_file: str = "data/rules.yaml"

    # Query defaults
    default_page_size: int = 10

    # Logging: per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_store: str = "INFO"            # record stores and seed loading
    log_level_rules: str = "INFO"            # rule engine decisions
    log_level_http: str = "INFO"             # request log of the API layer
    log_level_uvicorn: str = "INFO"          # uvicorn.access / uvicorn.error

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }

    def resolve_path(self, value: str) -> Path | None:
        """Absolute path for a configured file; relative ones hang off the backend directory."""
        if not value:
            return None
        path = Path(value)
        return path if path.is_absolute() else _BACKEND_DIR / path


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance; reads .env once."""
    return Settings()
