"""Packaging of local build artifacts for upload.

Single files (APKs) are uploaded as-is. Directories (iOS '.app' bundles)
are archived into a gzipped tarball whose only root entry is the
directory itself.
"""

from __future__ import annotations

import logging
import tarfile
import uuid
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".tar.gz"


class PackagingError(Exception):
    """Raised when a build artifact cannot be packaged."""

    def __init__(self, message: str, code: str = "packaging_error") -> None:
        super().__init__(message)
        self.code = code


@dataclass
class PackagedArtifact:
    """A file ready to be uploaded as a release asset.

    Attributes:
        file_path: File to upload.
        asset_name: Name of the release asset.
        size_bytes: Size of the file.
        is_temporary: Whether file_path is a scratch archive to delete after upload.
    """

    file_path: Path
    asset_name: str
    size_bytes: int
    is_temporary: bool = False

    def cleanup(self) -> None:
        """Remove the file if it is a scratch archive."""
        if self.is_temporary:
            self.file_path.unlink(missing_ok=True)


def create_tarball(source_dir: Path, dest_path: Path) -> Path:
    """Archive a directory into a gzipped tarball rooted at its leaf name.

    Args:
        source_dir: Directory to archive.
        dest_path: Archive path to write.

    Returns:
        The archive path.

    Raises:
        PackagingError: If archiving fails.
    """
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(dest_path, "w:gz") as tar:
            tar.add(source_dir, arcname=source_dir.name)
    except (tarfile.TarError, OSError) as e:
        dest_path.unlink(missing_ok=True)
        raise PackagingError(
            f"Failed to archive {source_dir}: {e}",
            code="tar_error",
        ) from e
    return dest_path


def package_if_directory(path: Path, work_dir: Path) -> PackagedArtifact:
    """Prepare a build artifact for upload.

    Args:
        path: Build artifact (file or directory).
        work_dir: Scratch directory for the archive when packaging.

    Returns:
        PackagedArtifact describing what to upload.

    Raises:
        PackagingError: If the path does not exist or archiving fails.
    """
    path = Path(path)
    if not path.exists():
        raise PackagingError(
            f"Build artifact does not exist: {path}",
            code="artifact_missing",
        )

    if not path.is_dir():
        return PackagedArtifact(
            file_path=path,
            asset_name=path.name,
            size_bytes=path.stat().st_size,
        )

    logger.info("Asset %s is a directory, creating tarball", path.name)
    tar_path = create_tarball(path, work_dir / f"{uuid.uuid4().hex}{ARCHIVE_SUFFIX}")
    logger.info("Tarball created at %s", tar_path.name)

    return PackagedArtifact(
        file_path=tar_path,
        asset_name=f"{path.name}{ARCHIVE_SUFFIX}",
        size_bytes=tar_path.stat().st_size,
        is_temporary=True,
    )


__all__ = [
    "ARCHIVE_SUFFIX",
    "PackagedArtifact",
    "PackagingError",
    "create_tarball",
    "package_if_directory",
]
