"""Tests for shared types."""

from pathlib import Path

import pytest

from github_build_cache.types import (
    BuildProps,
    CacheOutcome,
    OutcomeStatus,
    Platform,
    RunOptions,
    StoreConfig,
)


class TestPlatform:
    """Test Platform enum."""

    def test_values(self) -> None:
        """Platform values match orchestrator strings."""
        assert Platform("ios") is Platform.IOS
        assert Platform("android") is Platform.ANDROID

    def test_app_extension(self) -> None:
        """Each platform has its installable extension."""
        assert Platform.IOS.app_extension == "app"
        assert Platform.ANDROID.app_extension == "apk"

    def test_unknown_platform(self) -> None:
        """Unknown platforms are rejected."""
        with pytest.raises(ValueError):
            Platform("web")


class TestRunOptions:
    """Test RunOptions.from_mapping."""

    def test_camel_case(self) -> None:
        """Orchestrator camelCase keys are accepted."""
        options = RunOptions.from_mapping({"buildCache": True, "variant": "debug"})
        assert options.build_cache is True
        assert options.variant == "debug"
        assert options.configuration is None

    def test_snake_case(self) -> None:
        """snake_case keys are accepted."""
        options = RunOptions.from_mapping({"build_cache": False, "configuration": "Release"})
        assert options.build_cache is False
        assert options.configuration == "Release"

    def test_empty(self) -> None:
        """Missing options leave the cache unset."""
        assert RunOptions.from_mapping(None) == RunOptions()
        assert RunOptions.from_mapping({}).build_cache is None


class TestBuildProps:
    """Test BuildProps.from_mapping."""

    def test_from_orchestrator_mapping(self) -> None:
        """Should parse an orchestrator-shaped mapping."""
        props = BuildProps.from_mapping(
            {
                "projectRoot": "/work/app",
                "platform": "ios",
                "fingerprintHash": "abc",
                "runOptions": {"buildCache": True},
                "buildPath": "/work/app/build/MyApp.app",
            }
        )
        assert props.project_root == Path("/work/app")
        assert props.platform is Platform.IOS
        assert props.fingerprint_hash == "abc"
        assert props.run_options.build_cache is True
        assert props.build_path == Path("/work/app/build/MyApp.app")

    def test_empty_build_path(self) -> None:
        """An empty build path is treated as missing."""
        props = BuildProps.from_mapping(
            {"project_root": "/work/app", "platform": "android", "build_path": ""}
        )
        assert props.build_path is None
        assert props.run_options == RunOptions()


class TestStoreConfig:
    """Test StoreConfig."""

    def test_full_name(self) -> None:
        """full_name joins owner and repo."""
        assert StoreConfig(owner="acme", repo="builds").full_name == "acme/builds"


class TestCacheOutcome:
    """Test CacheOutcome."""

    def test_ok(self) -> None:
        """Only OK outcomes are ok."""
        assert CacheOutcome(status=OutcomeStatus.OK, message="hit", value="/x").ok
        for status in OutcomeStatus:
            if status is not OutcomeStatus.OK:
                assert not CacheOutcome(status=status, message="").ok
