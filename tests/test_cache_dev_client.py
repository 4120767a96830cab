"""Tests for cache/dev_client.py module."""

import pytest

from github_build_cache.cache.dev_client import (
    ManifestError,
    detect_dev_client_dependency,
    has_dev_client_dependency,
    is_dev_client_build,
    read_package_json,
)
from github_build_cache.types import RunOptions


class TestReadPackageJson:
    """Tests for read_package_json function."""

    def test_reads_manifest(self, dev_client_project):
        """Should parse package.json."""
        manifest = read_package_json(dev_client_project)
        assert manifest["dependencies"]["expo-dev-client"] == "~5.2.0"

    def test_missing_manifest(self, tmp_path):
        """Should raise ManifestError when package.json is missing."""
        with pytest.raises(ManifestError):
            read_package_json(tmp_path)

    def test_invalid_json(self, tmp_path):
        """Should raise ManifestError on malformed JSON."""
        (tmp_path / "package.json").write_text("{not json")
        with pytest.raises(ManifestError):
            read_package_json(tmp_path)

    def test_non_object(self, tmp_path):
        """Should raise ManifestError when the manifest is not an object."""
        (tmp_path / "package.json").write_text("[]")
        with pytest.raises(ManifestError) as exc_info:
            read_package_json(tmp_path)
        assert exc_info.value.code == "invalid_manifest"


class TestHasDevClientDependency:
    """Tests for has_dev_client_dependency function."""

    def test_in_dependencies(self):
        assert has_dev_client_dependency({"dependencies": {"expo-dev-client": "5.0.0"}})

    def test_in_dev_dependencies(self):
        assert has_dev_client_dependency(
            {"devDependencies": {"expo-dev-client": "5.0.0"}}
        )

    def test_absent(self):
        assert not has_dev_client_dependency({"dependencies": {"expo": "53.0.0"}})

    def test_empty_version(self):
        """An empty version string does not count as a dependency."""
        assert not has_dev_client_dependency({"dependencies": {"expo-dev-client": ""}})

    def test_no_sections(self):
        assert not has_dev_client_dependency({})


class TestDetectDevClientDependency:
    """Tests for detect_dev_client_dependency function."""

    def test_missing_manifest_is_false(self, tmp_path):
        """A missing manifest counts as no dependency."""
        assert detect_dev_client_dependency(tmp_path / "nowhere") is False

    def test_reader_error_is_false(self, tmp_path):
        """Reader failures count as no dependency."""

        def reader(root):
            raise OSError("permission denied")

        assert detect_dev_client_dependency(tmp_path, reader=reader) is False


class TestIsDevClientBuild:
    """Tests for is_dev_client_build function."""

    def test_debug_variant(self, dev_client_project):
        """Dependency plus variant 'debug' is a dev-client build."""
        assert is_dev_client_build(dev_client_project, RunOptions(variant="debug"))

    def test_release_variant(self, dev_client_project):
        """Dependency plus variant 'release' is not a dev-client build."""
        assert not is_dev_client_build(
            dev_client_project, RunOptions(variant="release")
        )

    def test_debug_configuration(self, dev_client_project):
        """Dependency plus configuration 'Debug' is a dev-client build."""
        assert is_dev_client_build(
            dev_client_project, RunOptions(configuration="Debug")
        )

    def test_configuration_is_case_sensitive(self, dev_client_project):
        """Configuration comparison is case-sensitive."""
        assert not is_dev_client_build(
            dev_client_project, RunOptions(configuration="debug")
        )

    def test_variant_takes_priority(self, dev_client_project):
        """Variant decides even when configuration is also set."""
        assert not is_dev_client_build(
            dev_client_project,
            RunOptions(variant="release", configuration="Debug"),
        )

    def test_no_variant_or_configuration(self, dev_client_project):
        """Dependency alone implies a dev-client build."""
        assert is_dev_client_build(dev_client_project, RunOptions())

    @pytest.mark.parametrize(
        "options",
        [
            RunOptions(),
            RunOptions(variant="debug"),
            RunOptions(configuration="Debug"),
        ],
    )
    def test_without_dependency(self, plain_project, options):
        """Without the dependency, run options do not matter."""
        assert not is_dev_client_build(plain_project, options)

    def test_dev_dependencies(self, make_project):
        """Dependency in devDependencies counts."""
        root = make_project("app", devDependencies={"expo-dev-client": "5.0.0"})
        assert is_dev_client_build(root, RunOptions(variant="debug"))
