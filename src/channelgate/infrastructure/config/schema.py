"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
StoreBackend = Literal["memory", "diskcache", "redis"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class UpstreamConfig(BaseModel):
    """Upstream stream service and transport settings."""

    base_url: str = Field(
        default="http://localhost:8080",
        description="Root URL of the upstream stream API.",
    )
    session_path: str = Field(
        default="gopst/channel",
        description="Route for session-bound proxy URLs (<base>/<path>/<id>).",
    )
    catalog_path: str = Field(
        default="streams/channel",
        description="Route for channel catalog streams (<base>/<path>/<id>).",
    )
    timeout_seconds: float = Field(
        default=30.0,
        description="Per-attempt timeout in seconds.",
    )
    max_retries: int = Field(
        default=3,
        description="Retries after the first attempt (3 = 4 attempts total).",
    )
    backoff_base_seconds: float = Field(
        default=1.0,
        description="Base delay for exponential backoff.",
    )
    max_backoff_seconds: float = Field(
        default=5.0,
        description="Upper bound for the delay between attempts.",
    )
    requests_per_second: float = Field(
        default=0.0,
        description="Per-host request rate limit. 0 = unlimited.",
    )
    user_agent: str = Field(
        default="channelgate/0.1.0",
        description="User-Agent for outgoing HTTP requests.",
    )

    @field_validator("timeout_seconds", "max_backoff_seconds")
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    @field_validator("max_retries", "backoff_base_seconds", "requests_per_second")
    @classmethod
    def _validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v


class CacheConfig(BaseModel):
    """URL cache and persistent store configuration."""

    backend: StoreBackend = Field(
        default="diskcache",
        description="Persistent store: 'memory', 'diskcache' (SQLite) or 'redis'.",
    )
    directory: Path = Field(
        default=Path("./.cache/channelgate"),
        validation_alias=AliasChoices("dir", "directory"),
        description="Diskcache SQLite DB path.",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (only when backend=redis).",
    )
    ttl_seconds: int = Field(
        default=600,
        description="Lifetime of a resolved stream URL (seconds).",
    )
    key_prefix: str = Field(
        default="streamUrl_",
        description="Namespace prefix for persisted cache keys.",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel store ops (semaphore limit).",
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_directory(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("ttl_seconds")
    @classmethod
    def _validate_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("ttl_seconds must be > 0")
        return v


class PreloadConfig(BaseModel):
    """Warm-up behaviour."""

    session_delay_seconds: float = Field(
        default=0.5,
        description="Pause between consecutive session initializations.",
    )
    on_startup: bool = Field(
        default=False,
        description="Preload popular live channels when the app starts.",
    )
    channel_ids: list[str] = Field(
        default_factory=list,
        description="Channels to warm on startup (empty = first live items).",
    )
    popular_limit: int = Field(
        default=5,
        description="How many live items to warm when channel_ids is empty.",
    )

    @field_validator("session_delay_seconds")
    @classmethod
    def _validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("session_delay_seconds must be >= 0")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (upstream/cache/preload/logging).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    app_name: str = Field(default="channelgate", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    preload: PreloadConfig = Field(default_factory=PreloadConfig)

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        cache = self.cache.model_dump()
        cache["dir"] = str(cache.pop("directory"))
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "upstream": self.upstream.model_dump(),
            "cache": cache,
            "preload": self.preload.model_dump(),
            "logging": {"level": self.log_level, "format": self.log_format},
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    load.py reads CHANNELGATE_* variables, keeps only the ones that are set,
    and merges them between the YAML layer and CLI overrides.

    Supported env var examples (flat, explicit):
    - CHANNELGATE_UPSTREAM_BASE_URL
    - CHANNELGATE_UPSTREAM_TIMEOUT_SECONDS
    - CHANNELGATE_CACHE_BACKEND
    - CHANNELGATE_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="CHANNELGATE_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    upstream_base_url: Optional[str] = None
    upstream_timeout_seconds: Optional[float] = None
    upstream_max_retries: Optional[int] = None
    upstream_requests_per_second: Optional[float] = None

    cache_backend: Optional[StoreBackend] = None
    cache_dir: Optional[Path] = None
    cache_redis_url: Optional[str] = None
    cache_ttl_seconds: Optional[int] = None

    preload_session_delay_seconds: Optional[float] = None
    preload_on_startup: Optional[bool] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
