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

from castarr.domain.entities.manifest import DEFAULT_AD_PATTERNS

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """Normalize a path-like value without filesystem side-effects."""
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class CacheConfig(BaseSettings):
    """Key-value backend for persisted play records."""

    backend: Literal["diskcache", "redis"] = Field(
        default="diskcache",
        description="Cache backend: 'diskcache' (SQLite) or 'redis'",
    )
    directory: Path = Field(
        default=Path("./.cache/castarr"),
        alias="dir",
        description="Diskcache SQLite DB path",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (only when backend=redis)",
    )
    ttl_seconds: int = Field(
        default=3600,
        description="Default TTL for cache entries (seconds)",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel cache ops (semaphore limit)",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _validate_directory(cls, v: Any) -> Path:
        return _normalize_path(v)


class ProbeConfig(BaseModel):
    """Source probing and ranking."""

    latency_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for the HEAD latency probe.",
    )
    throughput_timeout_seconds: float = Field(
        default=8.0,
        description="Timeout for the playlist download used to measure throughput.",
    )
    cache_ttl_seconds: float = Field(
        default=600.0,
        description="Lifetime of cached probe results (lazy expiry).",
    )
    max_concurrent: int = Field(
        default=8,
        description="Max sources probed in parallel per ranking cycle.",
    )
    detect_resolution: bool = Field(
        default=True,
        description="Read the master playlist when a source has no resolution label.",
    )

    @field_validator(
        "latency_timeout_seconds", "throughput_timeout_seconds", "cache_ttl_seconds"
    )
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("probe timeouts and TTL must be > 0")
        return v

    @field_validator("max_concurrent")
    @classmethod
    def _validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_concurrent must be >= 1")
        return v


class ManifestConfig(BaseModel):
    """HLS ad filtering and filtered playlist publishing."""

    remove_ads: bool = Field(default=True)
    min_segment_duration_seconds: float = Field(
        default=3.0,
        description="Segments shorter than this are treated as ads.",
    )
    ad_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_AD_PATTERNS),
        description="Case-insensitive URI substrings that mark ad segments.",
    )
    cache_ttl_seconds: float = Field(
        default=600.0,
        description="Lifetime of cached filter results and published playlists.",
    )
    fetch_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for downloading the original playlist.",
    )
    public_base_url: str = Field(
        default="http://localhost:7979",
        description="Externally reachable base URL used for published playlists.",
    )

    @field_validator("public_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class SessionConfig(BaseModel):
    """Playback session timers and persistence."""

    save_throttle_seconds: float = Field(
        default=10.0,
        description="Minimum interval between throttled progress writes.",
    )
    seek_settle_seconds: float = Field(
        default=0.5,
        description="How long the session stays in SEEKING after a seek.",
    )
    load_timeout_seconds: float = Field(
        default=60.0,
        description="Watchdog for the LOADING state.",
    )
    near_end_ratio: float = Field(
        default=0.95,
        description="Progress ratio after which the next-episode hint is raised.",
    )
    play_record_ttl_days: int = Field(
        default=365,
        description="Retention of persisted play records.",
    )

    @field_validator("near_end_ratio")
    @classmethod
    def _validate_ratio(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError("near_end_ratio must be in (0, 1]")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    YAML is sectioned (http/logging/cache/probe/manifest/session);
    environment variables are applied through EnvOverrides in load.py
    (defaults < YAML < ENV < CLI).
    """

    app_name: str = Field(default="castarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    http_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Default timeout of the shared HTTP client.",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
    )
    http_user_agent: str = Field(
        default="Castarr/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description="console/json. If unset, derived from environment.",
    )

    cache: CacheConfig = Field(default_factory=CacheConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    manifest: ManifestConfig = Field(default_factory=ManifestConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """Dump configuration in the sectioned shape used by config.yaml."""
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {
                "backend": self.cache.backend,
                "dir": str(self.cache.directory),
                "redis_url": self.cache.redis_url,
                "ttl_seconds": self.cache.ttl_seconds,
            },
            "probe": self.probe.model_dump(),
            "manifest": self.manifest.model_dump(),
            "session": self.session.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    load.py reads CASTARR_* variables, keeps the ones that are set and
    merges them over YAML/defaults before validating AppConfig.

    Examples:
    - CASTARR_LOG_LEVEL
    - CASTARR_HTTP_TIMEOUT_SECONDS
    - CASTARR_PUBLIC_BASE_URL
    - CASTARR_PROBE_MAX_CONCURRENT
    """

    model_config = SettingsConfigDict(
        env_prefix="CASTARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_backend: Optional[Literal["diskcache", "redis"]] = None
    cache_dir: Optional[Path] = None
    cache_redis_url: Optional[str] = None

    probe_max_concurrent: Optional[int] = None
    probe_cache_ttl_seconds: Optional[float] = None

    public_base_url: Optional[str] = None
    min_segment_duration_seconds: Optional[float] = None

    save_throttle_seconds: Optional[float] = None

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """Return only values that were actually provided (non-None)."""
        return self.model_dump(exclude_none=True)
