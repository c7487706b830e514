"""Configuration models for LangStats."""

from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, HttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..charts.models import ChartKind, Theme
from .settings import apply_overrides, load_config_from_file

MAX_LANGUAGES = 8


class TransportType(StrEnum):
    """MCP server transport types."""

    STDIO = "stdio"
    HTTP = "http"
    SSE = "sse"


class LogLevel(StrEnum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CacheBackend(StrEnum):
    """Durable cache backend types."""

    MEMORY = "memory"
    SQL = "sql"


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    transport: TransportType = Field(default=TransportType.STDIO)
    name: str = Field(default="LangStats")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate server port range."""
        if not 1 <= v <= 65535:
            raise ValueError("Server port must be between 1 and 65535")
        return v


class GitHubConfig(BaseModel):
    """GitHub API configuration."""

    api_url: HttpUrl = Field(default="https://api.github.com", validate_default=True)
    token: str | None = Field(default=None, repr=False)
    timeout: float = Field(default=10.0, gt=0)
    batch_size: int = Field(default=10, ge=1)
    batch_delay_seconds: float = Field(default=0.1, ge=0)
    per_page: int = Field(default=100, ge=1, le=100)
    user_agent: str = "LangStats/0.1.0"

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: str | None) -> str | None:
        """Treat a blank token as no token."""
        if v is None or not v.strip():
            return None
        return v.strip()


class CacheConfig(BaseModel):
    """Cache configuration."""

    backend: CacheBackend = CacheBackend.SQL
    url: str | None = "sqlite+aiosqlite:///langstats-cache.db"
    memory_ttl_seconds: float = Field(default=120, gt=0)
    ttl_seconds: float = Field(default=24 * 60 * 60, gt=0)
    language_ttl_seconds: float = Field(default=6 * 60 * 60, gt=0)
    compression_threshold_bytes: int = Field(default=1024, ge=0)
    max_payload_bytes: int = Field(default=16 * 1024 * 1024, gt=0)
    sweep_interval_seconds: float = Field(default=3600, gt=0)
    connect_retries: int = Field(default=3, ge=1)
    connect_backoff_seconds: float = Field(default=5.0, ge=0)
    pool_size: int = Field(default=10, ge=1)

    @model_validator(mode="after")
    def validate_sql_backend(self) -> "CacheConfig":
        """Validate SQL backend configuration."""
        if self.backend == CacheBackend.SQL and not self.url:
            raise ValueError("Database URL is required for the sql cache backend")
        return self


class ChartConfig(BaseModel):
    """Default chart options."""

    theme: Theme = Theme.DARK
    size: int = Field(default=400, gt=0)
    kind: ChartKind = ChartKind.DONUT
    max_languages: int = Field(default=MAX_LANGUAGES, ge=1)
    min_percentage: float = Field(default=0.0, ge=0, le=100)

    @field_validator("max_languages")
    @classmethod
    def clamp_max_languages(cls, v: int) -> int:
        """Clamp to the number of languages a chart can display."""
        return min(v, MAX_LANGUAGES)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    structured: bool = True
    format: str | None = None


class LangStatsConfig(BaseSettings):
    """Main LangStats configuration with file and environment support."""

    model_config = SettingsConfigDict(
        env_prefix="LANGSTATS_",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_assignment=True,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    chart: ChartConfig = Field(default_factory=ChartConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml_file(
        cls, file_path: Path, overrides: dict[str, Any] | None = None
    ) -> "LangStatsConfig":
        """Create configuration from YAML file with optional overrides.

        Args:
            file_path: Path to YAML configuration file
            overrides: Optional dictionary of override values

        Returns:
            Validated configuration instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If config file is invalid YAML
            ValidationError: If configuration is invalid
        """
        file_data = load_config_from_file(file_path)
        return cls(**apply_overrides(file_data, overrides))

    @classmethod
    def create(
        cls,
        config_path: Path | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> "LangStatsConfig":
        """Create configuration from file and environment with overrides.

        Args:
            config_path: Optional path to configuration file
            overrides: Optional settings to override

        Returns:
            Validated LangStats configuration
        """
        if config_path:
            return cls.from_yaml_file(config_path, overrides)
        else:
            # Load from environment variables only
            return cls(**apply_overrides({}, overrides))
