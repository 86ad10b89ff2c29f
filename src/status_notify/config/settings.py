"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``STATUSNOTIFY_``, nested via ``__``)
2. YAML config file (``STATUSNOTIFY_CONFIG_PATH`` env var)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class DatabaseEngine(enum.StrEnum):
    """Supported database engines."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class UnresolvedPolicy(enum.StrEnum):
    """What to do with a custom ``{{TOKEN}}`` missing from the render context."""

    BLANK = "blank"
    KEEP = "keep"


class MailEngine(enum.StrEnum):
    """Outbound message sink."""

    LOG = "log"
    RESEND = "resend"
    WEBHOOK = "webhook"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ServerConfig(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(
        env_prefix="STATUSNOTIFY_SERVER__",
        case_sensitive=False,
    )

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 4321
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class DatabaseConfig(BaseSettings):
    """Database settings for the status configuration store."""

    model_config = SettingsConfigDict(
        env_prefix="STATUSNOTIFY_DB__",
        case_sensitive=False,
    )

    engine: DatabaseEngine = Field(
        default=DatabaseEngine.SQLITE,
        description="Database backend: sqlite or postgresql",
    )
    dsn: str = Field(
        default="sqlite+aiosqlite:///./status_notify.db",
        description="Async database connection string",
    )
    max_idle_connections: int = 5
    max_open_connections: int = 10
    debug_sql: bool = False


class CatalogConfig(BaseSettings):
    """Status catalog seeding."""

    model_config = SettingsConfigDict(
        env_prefix="STATUSNOTIFY_CATALOG__",
        case_sensitive=False,
    )

    seed_path: str = Field(
        default="",
        description="YAML file of status entries upserted into the store on startup",
    )


class TemplateConfig(BaseSettings):
    """Placeholder rendering settings."""

    model_config = SettingsConfigDict(
        env_prefix="STATUSNOTIFY_TEMPLATE__",
        case_sensitive=False,
    )

    unresolved_policy: UnresolvedPolicy = UnresolvedPolicy.BLANK
    base_url: str = Field(default="", description="Origin that relative button links resolve against")
    primary_color: str = "#825BDD"
    svg_logo: str = ""


class DispatchConfig(BaseSettings):
    """Rate limiting, de-duplication and timeout of outbound messages."""

    model_config = SettingsConfigDict(
        env_prefix="STATUSNOTIFY_DISPATCH__",
        case_sensitive=False,
    )

    rate_limit: int = Field(default=10, ge=1, description="Events per project per window")
    window_seconds: float = Field(default=60.0, gt=0)
    dedup_retention_seconds: float = Field(default=60.0, gt=0)
    idle_retention_seconds: float = Field(default=300.0, gt=0)
    fingerprint_bucket_seconds: int = Field(default=60, ge=1)
    timeout_seconds: float = Field(default=10.0, gt=0)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)


class MailConfig(BaseSettings):
    """Mail / webhook sink settings."""

    model_config = SettingsConfigDict(
        env_prefix="STATUSNOTIFY_MAIL__",
        case_sensitive=False,
    )

    engine: MailEngine = MailEngine.LOG
    api_url: str = "https://api.resend.com/emails"
    api_key: str = ""
    from_name: str = "CAPCo"
    from_email: str = "noreply@capcofire.com"
    webhook_url: str = ""
    token_header: str = "Authorization"  # noqa: S105
    token_value: str = ""


class ToastConfig(BaseSettings):
    """Local (in-app) toast defaults."""

    model_config = SettingsConfigDict(
        env_prefix="STATUSNOTIFY_TOAST__",
        case_sensitive=False,
    )

    title: str = "Status Updated"
    duration_seconds: int = 5


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="STATUSNOTIFY_METRICS__",
        case_sensitive=False,
    )

    enabled: bool = True


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``STATUSNOTIFY_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="STATUSNOTIFY_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    config_path: str = ""

    server: ServerConfig = Field(default_factory=ServerConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    template: TemplateConfig = Field(default_factory=TemplateConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    mail: MailConfig = Field(default_factory=MailConfig)
    toast: ToastConfig = Field(default_factory=ToastConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                values[key] = {**val, **values[key]}
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))
