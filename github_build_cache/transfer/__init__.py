"""Artifact transfer module.

This module handles:
- Downloading release assets with progress reporting
- Extracting iOS app archives and locating the app bundle
- Packaging local artifacts for upload
"""

from github_build_cache.transfer.download import (
    ArtifactNotFoundError,
    DownloadError,
    ExtractionError,
    download_and_extract_app,
)
from github_build_cache.transfer.package import (
    PackagedArtifact,
    PackagingError,
    package_if_directory,
)

__all__ = [
    "ArtifactNotFoundError",
    "DownloadError",
    "ExtractionError",
    "PackagedArtifact",
    "PackagingError",
    "download_and_extract_app",
    "package_if_directory",
]
