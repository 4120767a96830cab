"""Shared fixtures for github_build_cache tests."""

import json
from pathlib import Path

import pytest

from github_build_cache.cache.store import LocalCacheStore
from github_build_cache.config import Settings


class RecordingReporter:
    """Reporter that records every event for assertions."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    def _record(self, kind: str, message: str) -> None:
        self.events.append((kind, message))

    def info(self, message: str) -> None:
        self._record("info", message)

    def success(self, message: str) -> None:
        self._record("success", message)

    def warn(self, message: str) -> None:
        self._record("warn", message)

    def error(self, message: str, error: BaseException | None = None) -> None:
        self._record("error", message)

    def start_progress(self, message: str) -> None:
        self._record("start", message)

    def update_progress(self, message: str) -> None:
        self._record("update", message)

    def stop_progress(self, message: str, success: bool = True) -> None:
        self._record("stop" if success else "fail", message)

    def messages(self, kind: str) -> list[str]:
        return [m for k, m in self.events if k == kind]


@pytest.fixture
def reporter() -> RecordingReporter:
    """Create a recording reporter."""
    return RecordingReporter()


@pytest.fixture
def store(tmp_path: Path) -> LocalCacheStore:
    """Create a local cache store under a temp directory."""
    return LocalCacheStore(tmp_path / "cache-root")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Create settings pointing at temp directories, without a token."""
    return Settings(
        github_token=None,
        cache_root=tmp_path / "cache-root",
    )


def _write_package_json(project_root: Path, **sections: dict[str, str]) -> Path:
    """Write a package.json with the given dependency sections."""
    project_root.mkdir(parents=True, exist_ok=True)
    manifest = {"name": "test-app", "version": "1.0.0", **sections}
    path = project_root / "package.json"
    path.write_text(json.dumps(manifest), encoding="utf-8")
    return path


@pytest.fixture
def dev_client_project(tmp_path: Path) -> Path:
    """Create a project depending on expo-dev-client."""
    root = tmp_path / "dev-client-app"
    _write_package_json(
        root,
        dependencies={"expo": "~53.0.0", "expo-dev-client": "~5.2.0"},
    )
    return root


@pytest.fixture
def plain_project(tmp_path: Path) -> Path:
    """Create a project without expo-dev-client."""
    root = tmp_path / "plain-app"
    _write_package_json(root, dependencies={"expo": "~53.0.0"})
    return root


@pytest.fixture
def make_project(tmp_path: Path):
    """Factory creating a project directory with a package.json."""

    def _make(name: str, **sections: dict[str, str]) -> Path:
        root = tmp_path / name
        _write_package_json(root, **sections)
        return root

    return _make
