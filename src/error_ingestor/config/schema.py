"""Pydantic models for configuration schema."""

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.stacktrace import InAppConfig, InAppPattern


class InAppSettings(BaseModel):
    """In-app frame classification rules.

    ``exclude_patterns`` left unset keeps the built-in exclude list; setting
    it (even to an empty list) replaces that list. Plain patterns match by
    substring, ``*_regex`` patterns by regular expression search.
    """

    include_patterns: list[str] = []
    exclude_patterns: list[str] | None = None
    include_regex: list[str] = []
    exclude_regex: list[str] = []

    @field_validator("include_regex", "exclude_regex")
    @classmethod
    def validate_regex(cls, v: list[str]) -> list[str]:
        """Reject patterns that do not compile."""
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid regular expression {pattern!r}: {e}") from e
        return v

    def to_in_app_config(self) -> InAppConfig:
        """Build the runtime classifier configuration."""
        include: list[InAppPattern] = [*self.include_patterns]
        include.extend(re.compile(p) for p in self.include_regex)

        exclude: tuple[InAppPattern, ...] | None = None
        if self.exclude_patterns is not None or self.exclude_regex:
            from ..core.in_app import DEFAULT_EXCLUDE_PATTERNS

            base: list[InAppPattern] = (
                [*self.exclude_patterns]
                if self.exclude_patterns is not None
                else list(DEFAULT_EXCLUDE_PATTERNS)
            )
            base.extend(re.compile(p) for p in self.exclude_regex)
            exclude = tuple(base)

        return InAppConfig(include_patterns=tuple(include), exclude_patterns=exclude)


class SourceMapSettings(BaseModel):
    """Source map cache configuration."""

    cache_ttl_seconds: float = Field(300.0, gt=0)
    cache_max_entries: int = Field(100, ge=1)


class ClickHouseConfig(BaseModel):
    """ClickHouse HTTP interface connection settings."""

    host: str = "http://localhost:8123"
    username: str = "default"
    password: str = ""
    database: str = "error_ingestor"
    timeout: float = Field(30.0, gt=0)

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Require an http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("ClickHouse host must be an http:// or https:// URL")
        return v.rstrip("/")


class StorageConfig(BaseModel):
    """Source map storage configuration."""

    provider: Literal["memory", "clickhouse"] = "memory"
    clickhouse: ClickHouseConfig | None = None

    @model_validator(mode="after")
    def check_provider_config(self) -> "StorageConfig":
        """Ensure provider-specific configuration is present."""
        if self.provider == "clickhouse" and self.clickhouse is None:
            raise ValueError("ClickHouse provider selected but clickhouse config missing")
        return self


class RetryConfig(BaseModel):
    """Retry configuration for transient storage failures."""

    max_attempts: int = Field(3, ge=1, le=10)
    min_wait: float = Field(1.0, ge=0.0, le=10.0)
    max_wait: float = Field(30.0, ge=0.0, le=300.0)


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path("/var/log/error-ingestor/ingestor.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: FileLoggingConfig = FileLoggingConfig()


class IngestorConfig(BaseSettings):
    """Root configuration for the error ingestor core."""

    in_app: InAppSettings = InAppSettings()
    source_maps: SourceMapSettings = SourceMapSettings()
    storage: StorageConfig = StorageConfig()
    retry: RetryConfig = RetryConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ERROR_INGESTOR_",
        env_nested_delimiter="__",
    )
