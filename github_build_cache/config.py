"""Configuration settings for github_build_cache.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

GITHUB_API_URL = "https://api.github.com"
GITHUB_UPLOADS_URL = "https://uploads.github.com"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the GH_BUILD_CACHE_
    prefix. The GitHub token is also read from the conventional GITHUB_TOKEN
    variable.
    """

    model_config = SettingsConfigDict(
        env_prefix="GH_BUILD_CACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Credentials
    github_token: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_TOKEN", "GH_BUILD_CACHE_GITHUB_TOKEN"),
        description="Token with read/write access to releases, tags and refs",
    )

    # Endpoints
    api_url: str = Field(
        default=GITHUB_API_URL,
        description="Base URL of the GitHub REST API",
    )
    uploads_url: str = Field(
        default=GITHUB_UPLOADS_URL,
        description="Base URL for release asset uploads",
    )

    # Paths
    cache_root: Path | None = Field(
        default=None,
        description="Root for downloaded builds and scratch files "
        "(uses the platform temp directory if not set)",
    )

    # Repository conventions
    branch_candidates: list[str] = Field(
        default_factory=lambda: ["main", "master"],
        description="Default branch names tried in order when tagging",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Timeouts (in seconds)
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for GitHub API requests",
    )
    download_timeout: float = Field(
        default=3600.0,
        gt=0,
        description="Timeout for artifact downloads",
    )
    upload_timeout: float = Field(
        default=3600.0,
        gt=0,
        description="Timeout for artifact uploads",
    )

    def token_value(self) -> str | None:
        """Return the plain token string, or None if unset or empty."""
        if self.github_token is None:
            return None
        return self.github_token.get_secret_value() or None


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    The token is rendered masked.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = [
    "GITHUB_API_URL",
    "GITHUB_UPLOADS_URL",
    "Settings",
    "get_settings",
    "print_settings_json",
]
