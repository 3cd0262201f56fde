from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_NAME = "depwarden"


def _default_home() -> Path:
    """Get default home directory using platformdirs."""
    return Path(PlatformDirs(appname=APP_NAME, appauthor=False).user_data_dir)


class DirectoryConfig(BaseSettings):
    """Directory configuration with computed paths."""

    model_config = SettingsConfigDict(env_prefix="DEPWARDEN_DIRECTORIES__")

    home: Path = Field(
        default_factory=_default_home,
        description="Base directory for all depwarden data",
    )

    @computed_field
    @property
    def data_dir(self) -> Path:
        """Directory holding the alert and rule JSON stores."""
        path = self.home / "data"
        path.mkdir(parents=True, exist_ok=True)
        return path

    @computed_field
    @property
    def logs_dir(self) -> Path:
        """Logs directory for JSONL event logs."""
        path = self.home / "logs"
        path.mkdir(parents=True, exist_ok=True)
        return path


class GitHubConfig(BaseSettings):
    """GitHub configuration."""

    model_config = SettingsConfigDict(env_prefix="DEPWARDEN_GITHUB__")

    token: str | None = Field(
        default=None,
        description="GitHub token used as bearer credential",
    )

    api_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the GitHub REST API",
    )

    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for each API call",
    )


class ResilienceConfig(BaseSettings):
    """Retry and circuit breaker settings for hosting API calls."""

    model_config = SettingsConfigDict(env_prefix="DEPWARDEN_RESILIENCE__")

    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=1.0, ge=0, description="Seconds before the second attempt")
    max_delay: float = Field(default=30.0, ge=0, description="Upper bound of a single backoff delay")
    failure_threshold: int = Field(default=5, ge=1, description="Consecutive failures that open a breaker")
    recovery_timeout: float = Field(default=60.0, ge=0, description="Seconds an open breaker waits before a trial call")


class RemediationConfig(BaseSettings):
    """Remediation workflow settings."""

    model_config = SettingsConfigDict(env_prefix="DEPWARDEN_REMEDIATION__")

    max_workers: int = Field(
        default=4,
        ge=1,
        description="Worker threads for concurrent remediation attempts",
    )

    manifest_path: str = Field(
        default="package.json",
        description="Dependency manifest path inside the repository",
    )

    lockfile_path: str = Field(
        default="package-lock.json",
        description="Lockfile path; never edited, only flagged for regeneration",
    )


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="DEPWARDEN_LOGGING__")

    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    console_output: bool = Field(default=False, description="Mirror log records to the console")
    logger_name: str = Field(default="depwarden")


class AppConfig(BaseSettings):
    """Root application configuration.

    All configuration is loaded from environment variables with DEPWARDEN_ prefix.
    Use double underscore for nested config: DEPWARDEN_GITHUB__TOKEN

    Example env vars:
        # Required for remediation
        export DEPWARDEN_GITHUB__TOKEN=ghp_xxxxxxxxxxxxx

        # Optional (with defaults)
        export DEPWARDEN_GITHUB__API_URL=https://api.github.com
        export DEPWARDEN_RESILIENCE__MAX_ATTEMPTS=3
        export DEPWARDEN_REMEDIATION__MAX_WORKERS=4
        export DEPWARDEN_DIRECTORIES__HOME=/custom/path
        export DEPWARDEN_LOGGING__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="DEPWARDEN_",
        env_nested_delimiter="__",
        frozen=True,
        extra="forbid",
    )

    directories: DirectoryConfig = Field(default_factory=DirectoryConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)
    remediation: RemediationConfig = Field(default_factory=RemediationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
