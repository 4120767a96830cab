"""Tests for cache/store.py module."""

import os
import sys
import tempfile
from pathlib import Path

from github_build_cache.cache.store import (
    APP_NAMESPACE,
    CACHE_SUBDIR,
    LocalCacheStore,
    default_temp_root,
)


class TestDefaultTempRoot:
    """Tests for default_temp_root function."""

    def test_under_system_temp(self):
        """Should live under the system temp directory."""
        root = default_temp_root()
        assert root.name == APP_NAMESPACE
        assert Path(tempfile.gettempdir()) in root.parents

    def test_custom_namespace(self):
        """Should use the given namespace."""
        assert default_temp_root("other-app").name == "other-app"


class TestLocalCacheStore:
    """Tests for LocalCacheStore."""

    def test_default_root(self):
        """Without a root, the platform temp directory is used."""
        store = LocalCacheStore()
        assert store.temp_dir == default_temp_root()
        assert store.cache_dir == default_temp_root() / CACHE_SUBDIR

    def test_path_for_ios(self, store):
        """iOS builds are cached as .app."""
        path = store.path_for("fingerprint.abc.ios", "ios")
        assert path == store.cache_dir / "fingerprint.abc.ios.app"

    def test_path_for_android(self, store):
        """Android builds are cached as .apk."""
        path = store.path_for("fingerprint.abc.android", "android")
        assert path == store.cache_dir / "fingerprint.abc.android.apk"

    def test_path_is_deterministic(self, tmp_path):
        """Two stores with the same root agree on paths."""
        a = LocalCacheStore(tmp_path)
        b = LocalCacheStore(tmp_path)
        assert a.path_for("t", "ios") == b.path_for("t", "ios")

    def test_exists(self, store):
        """exists() should reflect presence on disk."""
        path = store.path_for("t", "android")
        assert not store.exists(path)
        path.parent.mkdir(parents=True)
        path.write_bytes(b"apk")
        assert store.exists(path)

    def test_commit_moves_file(self, store, tmp_path):
        """commit() should move the file and create parents."""
        source = tmp_path / "download.apk"
        source.write_bytes(b"apk-bytes")
        dest = store.path_for("t", "android")

        result = store.commit(source, dest)

        assert result == dest
        assert dest.read_bytes() == b"apk-bytes"
        assert not source.exists()

    def test_commit_moves_directory(self, store, tmp_path):
        """commit() should move app bundle directories."""
        source = tmp_path / "extracted" / "MyApp.app"
        source.mkdir(parents=True)
        (source / "Info.plist").write_text("plist")
        dest = store.path_for("t", "ios")

        store.commit(source, dest)

        assert (dest / "Info.plist").read_text() == "plist"
        assert not source.exists()

    def test_commit_keeps_existing_entry(self, store, tmp_path):
        """An entry committed first wins; the new copy is discarded."""
        dest = store.path_for("t", "android")
        dest.parent.mkdir(parents=True)
        dest.write_bytes(b"first")
        source = tmp_path / "second.apk"
        source.write_bytes(b"second")

        result = store.commit(source, dest)

        assert result == dest
        assert dest.read_bytes() == b"first"
        assert not source.exists()

    def test_commit_race_keeps_first_entry(self, store, tmp_path, monkeypatch):
        """An entry appearing between the check and the move is not nested into."""
        source = tmp_path / "extracted" / "MyApp.app"
        source.mkdir(parents=True)
        (source / "Info.plist").write_text("second")
        dest = store.path_for("t", "ios")
        real_rename = os.rename

        def racing_rename(src, dst):
            Path(dst).mkdir()
            (Path(dst) / "Info.plist").write_text("first")
            real_rename(src, dst)

        monkeypatch.setattr(os, "rename", racing_rename)

        assert store.commit(source, dest) == dest
        assert (dest / "Info.plist").read_text() == "first"
        assert not (dest / "MyApp.app").exists()
        assert not source.exists()

    def test_make_work_dir_unique(self, store):
        """Work directories should never collide."""
        dirs = {store.make_work_dir("x-") for _ in range(10)}
        assert len(dirs) == 10
        for d in dirs:
            assert d.is_dir()
            assert d.parent == store.temp_dir
            assert d.name.startswith("x-")

    def test_list_and_size(self, store):
        """Should list entries and sum file sizes, including bundles."""
        apk = store.path_for("a", "android")
        apk.parent.mkdir(parents=True)
        apk.write_bytes(b"x" * 100)
        app = store.path_for("b", "ios")
        (app / "Frameworks").mkdir(parents=True)
        (app / "Frameworks" / "lib").write_bytes(b"y" * 50)

        assert [e.name for e in store.list_entries()] == [apk.name, app.name]
        assert store.size_bytes() == 150

    def test_list_empty(self, store):
        """A missing cache directory has no entries."""
        assert store.list_entries() == []
        assert store.size_bytes() == 0

    def test_remove(self, store):
        """remove() should delete one entry."""
        path = store.path_for("a", "android")
        path.parent.mkdir(parents=True)
        path.write_bytes(b"x")

        assert store.remove("a", "android") is True
        assert not path.exists()
        assert store.remove("a", "android") is False

    def test_clear(self, store):
        """clear() should delete all entries."""
        for tag in ("a", "b"):
            path = store.path_for(tag, "ios")
            path.mkdir(parents=True)
        assert store.clear() == 2
        assert store.list_entries() == []


if sys.platform.startswith("linux"):

    def test_linux_root_is_per_user():
        """On Linux the temp root is scoped by user name."""
        root = default_temp_root()
        assert root.parent.parent == Path(tempfile.gettempdir())
