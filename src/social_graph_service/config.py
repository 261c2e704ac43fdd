"""
Configuration for the Social Graph Service.

Settings are grouped per concern and loaded from environment variables via
pydantic-settings. Every group has its own prefix (``SOCIAL_FALKORDB_``,
``SOCIAL_NOTIFICATIONS_``, ...). Import the module-level ``settings`` object
rather than instantiating groups directly.
"""

from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class PathSettings(BaseSettings):
    """Filesystem locations for local state."""

    model_config = SettingsConfigDict(env_prefix="SOCIAL_", extra="ignore")

    base_dir: Path = Field(
        default=Path.home() / ".local" / "share" / "social-graph",
        description="Root directory for local databases",
    )


class FalkorDBSettings(BaseSettings):
    """FalkorDB graph store connection."""

    model_config = SettingsConfigDict(env_prefix="SOCIAL_FALKORDB_", extra="ignore")

    host: str = "localhost"
    port: int = Field(default=6379, ge=1, le=65535)
    password: SecretStr | None = None
    graph_name: str = "social_graph"
    max_connections: int = Field(default=16, ge=1, le=256)
    # 0 leaves the server-side default in place
    query_timeout_ms: int = Field(default=0, ge=0)


class NotificationSettings(BaseSettings):
    """Notification log and emitter."""

    model_config = SettingsConfigDict(env_prefix="SOCIAL_NOTIFICATIONS_", extra="ignore")

    db_path: Path | None = Field(default=None, description="SQLite file; defaults to <base_dir>/notifications/notifications.db")
    service_url: str | None = Field(
        default=None,
        description="Base URL of a remote notification service. When unset, events go to the local log.",
    )
    request_timeout: float = Field(default=5.0, gt=0.0, le=60.0)
    retention_days: int = Field(default=30, ge=1)
    detached_dispatch: bool = True


class CacheSettings(BaseSettings):
    """Optional Redis read-through cache for profiles."""

    model_config = SettingsConfigDict(env_prefix="SOCIAL_CACHE_", extra="ignore")

    enabled: bool = False
    url: str = "redis://localhost:6379"
    ttl_seconds: int = Field(default=60, ge=1, le=86400)
    key_prefix: str = "social:cache:"
    max_connections: int = Field(default=10, ge=1, le=256)


class HTTPSettings(BaseSettings):
    """HTTP server binding."""

    model_config = SettingsConfigDict(env_prefix="SOCIAL_HTTP_", extra="ignore")

    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5173", "http://localhost:5174"])


class Settings(BaseSettings):
    """Top-level settings aggregate."""

    model_config = SettingsConfigDict(env_prefix="SOCIAL_", extra="ignore")

    log_level: str = "INFO"

    paths: PathSettings = Field(default_factory=PathSettings)
    falkordb: FalkorDBSettings = Field(default_factory=FalkorDBSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    http: HTTPSettings = Field(default_factory=HTTPSettings)

    @property
    def notification_db_path(self) -> Path:
        """Resolved path of the local notification database."""
        if self.notifications.db_path is not None:
            return self.notifications.db_path
        return self.paths.base_dir / "notifications" / "notifications.db"


settings = Settings()
