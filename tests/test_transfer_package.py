"""Tests for transfer/package.py module."""

import tarfile

import pytest

from github_build_cache.transfer.package import (
    PackagingError,
    create_tarball,
    package_if_directory,
)


@pytest.fixture
def app_bundle(tmp_path):
    """Create a fake iOS app bundle directory."""
    bundle = tmp_path / "build" / "MyApp.app"
    (bundle / "Frameworks").mkdir(parents=True)
    (bundle / "Info.plist").write_text("<plist/>")
    (bundle / "MyApp").write_bytes(b"\x00binary")
    (bundle / "Frameworks" / "Lib.dylib").write_bytes(b"lib")
    return bundle


class TestPackageIfDirectory:
    """Tests for package_if_directory function."""

    def test_file_used_as_is(self, tmp_path):
        """A single file is uploaded under its own name."""
        apk = tmp_path / "app-release.apk"
        apk.write_bytes(b"apk-content")
        work = tmp_path / "work"

        artifact = package_if_directory(apk, work)

        assert artifact.file_path == apk
        assert artifact.asset_name == "app-release.apk"
        assert artifact.size_bytes == len(b"apk-content")
        assert artifact.is_temporary is False

    def test_directory_is_archived(self, app_bundle, tmp_path):
        """A directory becomes '<name>.tar.gz' rooted at the leaf name."""
        work = tmp_path / "work"

        artifact = package_if_directory(app_bundle, work)

        assert artifact.asset_name == "MyApp.app.tar.gz"
        assert artifact.is_temporary is True
        assert artifact.file_path.parent == work
        assert artifact.size_bytes == artifact.file_path.stat().st_size

        with tarfile.open(artifact.file_path, "r:gz") as tar:
            names = tar.getnames()
        assert "MyApp.app" in names
        assert "MyApp.app/Info.plist" in names
        assert "MyApp.app/Frameworks/Lib.dylib" in names
        assert all(n.split("/")[0] == "MyApp.app" for n in names)

    def test_archive_names_unique(self, app_bundle, tmp_path):
        """Each packaging call writes a new archive."""
        work = tmp_path / "work"
        first = package_if_directory(app_bundle, work)
        second = package_if_directory(app_bundle, work)
        assert first.file_path != second.file_path

    def test_cleanup_removes_temporary_archive(self, app_bundle, tmp_path):
        """cleanup() deletes scratch archives only."""
        artifact = package_if_directory(app_bundle, tmp_path / "work")
        artifact.cleanup()
        assert not artifact.file_path.exists()

    def test_cleanup_keeps_original_file(self, tmp_path):
        """cleanup() never deletes the caller's artifact."""
        apk = tmp_path / "app.apk"
        apk.write_bytes(b"x")
        package_if_directory(apk, tmp_path / "work").cleanup()
        assert apk.exists()

    def test_missing_path(self, tmp_path):
        """A missing artifact raises PackagingError."""
        with pytest.raises(PackagingError) as exc_info:
            package_if_directory(tmp_path / "missing.apk", tmp_path / "work")
        assert exc_info.value.code == "artifact_missing"


class TestCreateTarball:
    """Tests for create_tarball function."""

    def test_creates_parent_dirs(self, app_bundle, tmp_path):
        """Should create the destination's parent directories."""
        dest = tmp_path / "a" / "b" / "out.tar.gz"
        assert create_tarball(app_bundle, dest) == dest
        assert dest.exists()
