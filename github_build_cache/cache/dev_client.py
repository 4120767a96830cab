"""Development client build detection.

A build counts as a development client build when the project depends on
expo-dev-client and the run options select a debug variant/configuration
(or do not say either way).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from github_build_cache.types import RunOptions

logger = logging.getLogger(__name__)

DEV_CLIENT_PACKAGE = "expo-dev-client"
DEBUG_VARIANT = "debug"
DEBUG_CONFIGURATION = "Debug"

ManifestReader = Callable[[Path], Mapping[str, Any]]


class ManifestError(Exception):
    """Raised when the project manifest cannot be read."""

    def __init__(self, message: str, code: str = "manifest_error") -> None:
        super().__init__(message)
        self.code = code


def read_package_json(project_root: Path) -> dict[str, Any]:
    """Read package.json from a project root.

    Args:
        project_root: Project root directory.

    Returns:
        Parsed manifest.

    Raises:
        ManifestError: If the manifest is missing, unreadable or not an object.
    """
    manifest_path = Path(project_root) / "package.json"
    try:
        with manifest_path.open(encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ManifestError(f"Cannot read {manifest_path}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(
            f"{manifest_path} is not a JSON object", code="invalid_manifest"
        )
    return data


def has_dev_client_dependency(manifest: Mapping[str, Any]) -> bool:
    """Check for expo-dev-client in dependencies or devDependencies."""
    for section in ("dependencies", "devDependencies"):
        deps = manifest.get(section) or {}
        if isinstance(deps, Mapping) and deps.get(DEV_CLIENT_PACKAGE):
            return True
    return False


def detect_dev_client_dependency(
    project_root: Path,
    reader: ManifestReader = read_package_json,
) -> bool:
    """Check whether the project directly depends on expo-dev-client.

    A manifest that cannot be read counts as no dependency.
    """
    try:
        manifest = reader(Path(project_root))
    except (ManifestError, OSError, ValueError) as e:
        logger.debug("No readable manifest in %s: %s", project_root, e)
        return False
    return has_dev_client_dependency(manifest)


def is_dev_client_build(
    project_root: Path,
    run_options: RunOptions,
    reader: ManifestReader = read_package_json,
) -> bool:
    """Decide whether a build is a development client build.

    Args:
        project_root: Project root directory.
        run_options: Build run options.
        reader: Package manifest reader.

    Returns:
        True for dev-client builds.
    """
    if not detect_dev_client_dependency(project_root, reader=reader):
        return False

    if run_options.variant is not None:
        return run_options.variant == DEBUG_VARIANT
    if run_options.configuration is not None:
        return run_options.configuration == DEBUG_CONFIGURATION

    return True


__all__ = [
    "DEBUG_CONFIGURATION",
    "DEBUG_VARIANT",
    "DEV_CLIENT_PACKAGE",
    "ManifestError",
    "ManifestReader",
    "detect_dev_client_dependency",
    "has_dev_client_dependency",
    "is_dev_client_build",
    "read_package_json",
]
