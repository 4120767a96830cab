"""GitHub release registry module.

This module handles tag, release and asset operations against the
GitHub REST API.
"""

from github_build_cache.registry.models import Release, ReleaseHandle, RemoteAsset
from github_build_cache.registry.service import (
    DefaultBranchNotFoundError,
    RegistryError,
    ReleaseInconsistencyError,
    ReleaseNotFoundError,
    ReleaseRegistry,
    create_registry_client,
)

__all__ = [
    "DefaultBranchNotFoundError",
    "RegistryError",
    "Release",
    "ReleaseHandle",
    "ReleaseInconsistencyError",
    "ReleaseNotFoundError",
    "ReleaseRegistry",
    "RemoteAsset",
    "create_registry_client",
]
