"""
POS Monitor Backend Configuration

Uses pydantic-settings for type-safe environment variable loading.
Backend selection is resolved once into a StorageConfig at startup.
"""

import os
import sys
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from core.errors import ConfigurationError

EMBEDDED_DB_FILENAME = "pos-system.db"
APP_DATA_DIRNAME = "pos-monitor"

# Find .env file: check CWD first, then parent (project root)
_env_file = Path(".env")
if not _env_file.exists():
    _parent_env = Path(__file__).resolve().parent.parent.parent / ".env"
    if _parent_env.exists():
        _env_file = _parent_env


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "POS Monitor"
    app_version: str = "1.0.0"
    app_env: str = "local"
    debug: bool = False

    # Database: an empty database_url routes to the embedded backend
    database_url: str = ""
    database_echo: bool = False
    use_embedded_db: bool = False
    database_path: str = ""
    app_data_dir: str = ""
    storage_timeout_seconds: float = 10.0

    # Realtime monitoring
    ws_send_timeout_seconds: float = 2.0
    device_simulation_enabled: bool = False
    device_simulation_interval_seconds: float = 5.0

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    model_config = {
        "env_file": str(_env_file),
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


@dataclass(frozen=True)
class StorageConfig:
    """Resolved storage backend. Exactly one per process."""

    backend: str  # "embedded" | "remote"
    url: str
    database_path: Path | None = None
    echo: bool = False
    timeout_seconds: float = 10.0

    @property
    def is_embedded(self) -> bool:
        return self.backend == "embedded"


def default_app_data_dir(platform: str | None = None, env: dict | None = None) -> Path:
    """Per-user application-data directory, following each platform's convention."""
    platform = platform or sys.platform
    env = os.environ if env is None else env
    home = Path(env.get("HOME") or Path.home())

    if platform.startswith("win"):
        base = Path(env["APPDATA"]) if env.get("APPDATA") else home / "AppData" / "Roaming"
    elif platform == "darwin":
        base = home / "Library" / "Application Support"
    else:
        base = Path(env["XDG_CONFIG_HOME"]) if env.get("XDG_CONFIG_HOME") else home / ".config"
    return base / APP_DATA_DIRNAME


def _normalize_remote_url(raw_url: str) -> str:
    try:
        url = make_url(raw_url)
    except ArgumentError as exc:
        raise ConfigurationError(f"DATABASE_URL is malformed: {exc}") from exc

    if url.drivername in ("postgres", "postgresql", "postgresql+asyncpg"):
        url = url.set(drivername="postgresql+asyncpg")
    else:
        raise ConfigurationError(
            f"DATABASE_URL must point at PostgreSQL, got driver '{url.drivername}'"
        )
    if not url.host and not url.query.get("host"):
        raise ConfigurationError("DATABASE_URL has no host")
    return url.render_as_string(hide_password=False)


def resolve_storage_config(settings: Settings) -> StorageConfig:
    """
    Pick the storage backend for this process.

    Embedded when explicitly requested (USE_EMBEDDED_DB or DATABASE_PATH)
    or when no remote connection string is configured; remote otherwise.
    """
    embedded = (
        settings.use_embedded_db
        or bool(settings.database_path.strip())
        or not settings.database_url.strip()
    )

    if embedded:
        if settings.database_path.strip():
            db_path = Path(settings.database_path).expanduser()
        else:
            data_dir = (
                Path(settings.app_data_dir).expanduser()
                if settings.app_data_dir.strip()
                else default_app_data_dir()
            )
            db_path = data_dir / EMBEDDED_DB_FILENAME
        return StorageConfig(
            backend="embedded",
            url=f"sqlite+aiosqlite:///{db_path}",
            database_path=db_path,
            echo=settings.database_echo,
            timeout_seconds=settings.storage_timeout_seconds,
        )

    return StorageConfig(
        backend="remote",
        url=_normalize_remote_url(settings.database_url.strip()),
        echo=settings.database_echo,
        timeout_seconds=settings.storage_timeout_seconds,
    )
