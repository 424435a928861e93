"""Configuration management using Pydantic Settings."""

from enum import Enum

from pydantic_settings import BaseSettings


class StorageBackend(str, Enum):
    """Overlay storage backend type."""
    SQLITE = "sqlite"
    REDIS = "redis"


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


class ArchiveConfig(BaseSettings):
    """Configuration for the pearlarchive service."""

    # Corpus
    corpus_path: str = "threads.json"

    # Overlay storage
    storage_backend: StorageBackend = StorageBackend.SQLITE
    sqlite_path: str = ".pearlarchive.db"
    redis_url: str = "redis://localhost:6379/0"
    overlay_ttl_seconds: int = 60

    # Identity supplied by the upstream auth proxy
    admin_user_ids: list[str] = []
    user_id_header: str = "X-User-Id"
    user_role_header: str = "X-User-Role"

    # Logging
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.CONSOLE

    model_config = {
        "env_prefix": "PEARLARCHIVE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }
