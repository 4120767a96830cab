"""Local cache of downloaded builds.

Downloaded apps are kept at a path derived only from their tag, so an
existing file at that path is trusted as the build for that tag. There is
no expiry and no size bound; use `clear` to prune manually.
"""

from __future__ import annotations

import getpass
import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path

from github_build_cache.types import Platform

logger = logging.getLogger(__name__)

APP_NAMESPACE = "github-build-cache-provider"
CACHE_SUBDIR = "build-run-cache"


def default_temp_root(namespace: str = APP_NAMESPACE) -> Path:
    """Return the platform temp directory for the application namespace.

    On Linux the directory is additionally scoped by user name, since the
    system temp directory is shared.
    """
    base = Path(tempfile.gettempdir())
    if sys.platform.startswith("linux"):
        try:
            return base / getpass.getuser() / namespace
        except (KeyError, OSError):
            pass
    return base / namespace


class LocalCacheStore:
    """Deterministic on-disk locations for cached builds and scratch files.

    Attributes:
        temp_dir: Namespace root; scratch directories are created here.
        cache_dir: Directory holding committed builds.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.temp_dir = Path(root) if root is not None else default_temp_root()
        self.cache_dir = self.temp_dir / CACHE_SUBDIR

    def path_for(self, tag: str, platform: Platform | str) -> Path:
        """Return the cache path for a tag."""
        return self.cache_dir / f"{tag}.{Platform(platform).app_extension}"

    def exists(self, path: Path) -> bool:
        """Check whether a cache entry is present."""
        return path.exists()

    def commit(self, source: Path, dest: Path) -> Path:
        """Move a completed artifact into the cache.

        If another run committed the same entry first, the incoming copy is
        discarded and the existing entry is kept.

        Args:
            source: Completed artifact (file or directory).
            dest: Cache path from path_for().

        Returns:
            The cache path.
        """
        if dest.exists():
            logger.info("Cache entry %s already present, discarding %s", dest, source)
            _remove_path(source)
            return dest

        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            # Never nests into a directory another run committed meanwhile
            os.rename(source, dest)
        except OSError:
            if not dest.exists():
                raise
            logger.info("Cache entry %s committed concurrently, discarding %s", dest, source)
            _remove_path(source)
            return dest
        logger.debug("Committed %s to cache at %s", source.name, dest)
        return dest

    def make_work_dir(self, prefix: str = "work-") -> Path:
        """Create a unique scratch directory under the temp root."""
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=prefix, dir=self.temp_dir))

    def list_entries(self) -> list[Path]:
        """List committed cache entries, sorted by name."""
        if not self.cache_dir.exists():
            return []
        return sorted(self.cache_dir.iterdir())

    def size_bytes(self) -> int:
        """Calculate the total size of committed cache entries."""
        total = 0
        for entry in self.list_entries():
            if entry.is_file():
                total += entry.stat().st_size
            else:
                for path in entry.rglob("*"):
                    if path.is_file():
                        total += path.stat().st_size
        return total

    def remove(self, tag: str, platform: Platform | str) -> bool:
        """Remove one cache entry.

        Returns:
            True if an entry was removed, False if none existed.
        """
        path = self.path_for(tag, platform)
        if not path.exists():
            return False
        logger.info("Removing cache entry %s", path)
        _remove_path(path)
        return True

    def clear(self) -> int:
        """Remove all committed cache entries.

        Returns:
            Number of entries removed.
        """
        entries = self.list_entries()
        for entry in entries:
            _remove_path(entry)
        logger.info("Removed %d cache entries from %s", len(entries), self.cache_dir)
        return len(entries)


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=True)
    else:
        path.unlink(missing_ok=True)


__all__ = ["APP_NAMESPACE", "CACHE_SUBDIR", "LocalCacheStore", "default_temp_root"]
