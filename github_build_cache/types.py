"""Shared type definitions for github_build_cache.

This module contains enums and dataclasses shared across subpackages
to avoid circular imports.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class Platform(str, Enum):
    """Target platform of a build."""

    IOS = "ios"
    ANDROID = "android"

    @property
    def app_extension(self) -> str:
        """File extension of an installable app for this platform."""
        return "app" if self is Platform.IOS else "apk"


class OutcomeStatus(str, Enum):
    """Status of a resolve or upload call."""

    OK = "ok"
    DISABLED = "disabled"
    MISSING_CREDENTIAL = "missing_credential"
    CACHE_MISS = "cache_miss"
    FAILED = "failed"


@dataclass
class RunOptions:
    """Build run options supplied by the build orchestrator.

    Attributes:
        build_cache: Whether the remote cache is enabled for this run.
        variant: Android build variant (e.g. 'debug', 'release').
        configuration: iOS build configuration (e.g. 'Debug', 'Release').
    """

    build_cache: bool | None = None
    variant: str | None = None
    configuration: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "RunOptions":
        """Build RunOptions from an orchestrator-shaped mapping.

        Accepts both camelCase ('buildCache') and snake_case keys.
        """
        if not data:
            return cls()
        build_cache = data.get("buildCache", data.get("build_cache"))
        return cls(
            build_cache=build_cache,
            variant=data.get("variant"),
            configuration=data.get("configuration"),
        )


@dataclass
class BuildProps:
    """Build context for a resolve or upload call."""

    project_root: Path
    platform: Platform
    fingerprint_hash: str
    run_options: RunOptions = field(default_factory=RunOptions)
    build_path: Path | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BuildProps":
        """Build BuildProps from an orchestrator-shaped mapping."""
        build_path = data.get("buildPath", data.get("build_path"))
        return cls(
            project_root=Path(data.get("projectRoot", data.get("project_root", ""))),
            platform=Platform(data["platform"]),
            fingerprint_hash=data.get(
                "fingerprintHash", data.get("fingerprint_hash", "")
            ),
            run_options=RunOptions.from_mapping(
                data.get("runOptions", data.get("run_options"))
            ),
            build_path=Path(build_path) if build_path else None,
        )


@dataclass
class StoreConfig:
    """Coordinates of the GitHub repository holding the cache."""

    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        """Return 'owner/repo'."""
        return f"{self.owner}/{self.repo}"


@dataclass
class CacheOutcome:
    """Result of a resolve or upload call before it is collapsed to a value."""

    status: OutcomeStatus
    message: str
    value: str | None = None
    code: str | None = None
    details: dict[str, object] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the call produced a value."""
        return self.status is OutcomeStatus.OK


__all__ = [
    "BuildProps",
    "CacheOutcome",
    "OutcomeStatus",
    "Platform",
    "RunOptions",
    "StoreConfig",
]
