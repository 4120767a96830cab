"""Build artifact download and extraction.

This module handles:
- Authenticated streaming download of release assets
- Progress reporting while downloading
- Archive extraction (native tar with a tarfile fallback)
- Locating the installable app inside an extracted archive
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
import tarfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

import httpx

from github_build_cache.cache.store import LocalCacheStore
from github_build_cache.reporter import NullReporter, ProgressReporter
from github_build_cache.types import Platform

logger = logging.getLogger(__name__)

# Host whose asset URLs expect the 'token' authorization scheme
GITHUB_API_HOST = "api.github.com"

# Timeout for downloads (seconds)
DOWNLOAD_TIMEOUT = 3600

# Chunk size for downloads (bytes)
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB

MEGABYTE = 1024 * 1024


class DownloadError(Exception):
    """Raised when an artifact download fails."""

    def __init__(self, message: str, code: str = "download_error") -> None:
        """Initialize DownloadError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


class ExtractionError(Exception):
    """Raised when archive extraction fails."""

    def __init__(self, message: str, code: str = "extraction_error") -> None:
        """Initialize ExtractionError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


class ArtifactNotFoundError(Exception):
    """Raised when no installable app is found in an extracted archive."""

    def __init__(self, message: str, code: str = "artifact_not_found") -> None:
        super().__init__(message)
        self.code = code


@dataclass
class DownloadResult:
    """Result of an artifact download."""

    path: Path
    size_bytes: int
    content_length: int | None = None


def auth_headers(
    url: str,
    token: str | None,
    api_host: str = GITHUB_API_HOST,
) -> dict[str, str]:
    """Build request headers for downloading an asset.

    API hosts get the 'token' scheme; any other host (e.g. blob storage a
    download redirects to) gets the 'Bearer' scheme.

    Args:
        url: Asset URL.
        token: GitHub token, or None for anonymous access.
        api_host: Host name of the GitHub API.

    Returns:
        Header mapping.
    """
    headers = {"Accept": "application/octet-stream"}
    if not token:
        return headers

    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        host = ""

    scheme = "token" if host == api_host else "Bearer"
    headers["Authorization"] = f"{scheme} {token}"
    return headers


def _parse_content_length(response: httpx.Response) -> int | None:
    raw = response.headers.get("content-length")
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def _stream_to_file(
    client: httpx.Client,
    url: str,
    dest_path: Path,
    headers: dict[str, str],
    reporter: ProgressReporter,
    timeout: float,
    chunk_size: int,
) -> DownloadResult:
    try:
        with client.stream(
            "GET", url, headers=headers, timeout=timeout, follow_redirects=True
        ) as response:
            response.raise_for_status()

            content_length = _parse_content_length(response)
            total_mb = content_length // MEGABYTE if content_length else 0
            received = 0
            reported_mb = -1

            dest_path.parent.mkdir(parents=True, exist_ok=True)

            with dest_path.open("wb") as f:
                for chunk in response.iter_bytes(chunk_size):
                    f.write(chunk)
                    received += len(chunk)
                    if content_length:
                        received_mb = received // MEGABYTE
                        if received_mb != reported_mb:
                            reported_mb = received_mb
                            reporter.update_progress(
                                f"Downloading {received_mb}MB / {total_mb}MB"
                            )

            return DownloadResult(
                path=dest_path,
                size_bytes=received,
                content_length=content_length,
            )

    except httpx.HTTPStatusError as e:
        raise DownloadError(
            f"Failed to download file from {url}: "
            f"{e.response.status_code} {e.response.reason_phrase}",
            code="http_error",
        ) from e
    except httpx.TimeoutException as e:
        raise DownloadError(
            f"Timeout downloading {url}",
            code="timeout",
        ) from e
    except httpx.RequestError as e:
        raise DownloadError(
            f"Network error downloading {url}: {e}",
            code="network_error",
        ) from e
    except OSError as e:
        raise DownloadError(
            f"Cannot write {dest_path}: {e}",
            code="os_error",
        ) from e


def download_file(
    client: httpx.Client,
    url: str,
    dest_path: Path,
    token: str | None = None,
    reporter: ProgressReporter | None = None,
    timeout: float = DOWNLOAD_TIMEOUT,
    chunk_size: int = DOWNLOAD_CHUNK_SIZE,
    api_host: str = GITHUB_API_HOST,
) -> DownloadResult:
    """Stream a file to disk.

    A partially written file is removed before any error propagates, so a
    failed download never leaves something that looks like a cache entry.

    Args:
        client: HTTPX client instance.
        url: URL to download from.
        dest_path: Destination path for the downloaded file.
        token: GitHub token for the Authorization header.
        reporter: Progress reporter.
        timeout: Download timeout in seconds.
        chunk_size: Size of chunks to download.
        api_host: Host name of the GitHub API.

    Returns:
        DownloadResult with path and size.

    Raises:
        DownloadError: If the download fails.
    """
    reporter = reporter or NullReporter()
    logger.info("Downloading %s to %s", url, dest_path)
    reporter.start_progress("Downloading file")

    try:
        result = _stream_to_file(
            client,
            url,
            dest_path,
            auth_headers(url, token, api_host=api_host),
            reporter,
            timeout,
            chunk_size,
        )
    except BaseException:
        dest_path.unlink(missing_ok=True)
        reporter.stop_progress("Download failed", success=False)
        raise

    reporter.stop_progress("Download complete")
    logger.info("Downloaded %s (%d bytes)", dest_path.name, result.size_bytes)
    return result


def _reset_dir(path: Path) -> None:
    shutil.rmtree(path, ignore_errors=True)
    path.mkdir(parents=True, exist_ok=True)


def _extract_with_native_tar(archive_path: Path, dest_dir: Path) -> bool:
    """Try the system tar binary. Returns False if it is unavailable or fails."""
    try:
        # List args, no shell; both paths come from our own scratch dirs
        result = subprocess.run(
            ["tar", "-xf", str(archive_path), "-C", str(dest_dir)],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.warning("Native tar unavailable: %s", e)
        return False

    if result.returncode != 0:
        logger.warning(
            "Native tar failed for %s: %s", archive_path.name, result.stderr.strip()
        )
        return False
    return True


def _extract_with_tarfile(archive_path: Path, dest_dir: Path) -> None:
    try:
        with tarfile.open(archive_path, "r:*") as tar:
            tar.extractall(dest_dir, filter="data")
    except tarfile.TarError as e:
        raise ExtractionError(
            f"Failed to extract {archive_path}: {e}",
            code="tar_error",
        ) from e
    except OSError as e:
        raise ExtractionError(
            f"OS error extracting {archive_path}: {e}",
            code="os_error",
        ) from e


def extract_archive(
    archive_path: Path,
    dest_dir: Path,
    reporter: ProgressReporter | None = None,
    use_native: bool | None = None,
) -> Path:
    """Extract a tar archive.

    The native tar binary is tried first; if it is missing or fails, the
    destination is cleared and the archive is extracted with tarfile.

    Args:
        archive_path: Path to the archive file.
        dest_dir: Destination directory for extraction.
        reporter: Progress reporter.
        use_native: Force or skip the native tar attempt
            (default: try it everywhere except Windows).

    Returns:
        The destination directory.

    Raises:
        ExtractionError: If extraction fails.
    """
    reporter = reporter or NullReporter()
    if use_native is None:
        use_native = sys.platform != "win32"

    logger.info("Extracting %s to %s", archive_path.name, dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)

    if use_native:
        if _extract_with_native_tar(archive_path, dest_dir):
            return dest_dir
        reporter.warn(
            "Failed to extract tar using native tools, falling back on tarfile"
        )
        _reset_dir(dest_dir)

    logger.info("Extracting %s using tarfile", archive_path.name)
    _extract_with_tarfile(archive_path, dest_dir)
    return dest_dir


def locate_app(root: Path, extension: str) -> Path:
    """Find the installable app inside an extracted tree.

    Matches files or directories named '*.<extension>' at any depth. When
    several match, the shallowest wins, ties broken by path order.

    Args:
        root: Extracted directory.
        extension: App extension without dot ('app' or 'apk').

    Returns:
        Path to the app.

    Raises:
        ArtifactNotFoundError: If nothing matches.
    """
    matches = sorted(
        root.rglob(f"*.{extension}"),
        key=lambda p: (len(p.relative_to(root).parts), p.relative_to(root).as_posix()),
    )
    if not matches:
        raise ArtifactNotFoundError(
            f"Did not find any installable .{extension} apps inside tarball"
        )
    if len(matches) > 1:
        logger.debug(
            "Found %d .%s candidates, using %s", len(matches), extension, matches[0]
        )
    return matches[0]


def _maybe_cache(
    store: LocalCacheStore,
    app_path: Path,
    cache_path: Path | None,
    reporter: ProgressReporter,
) -> Path:
    if cache_path is None:
        return app_path
    reporter.start_progress("Caching app for future use")
    result = store.commit(app_path, cache_path)
    reporter.stop_progress("App cached successfully")
    return result


def download_and_extract_app(
    client: httpx.Client,
    url: str,
    platform: Platform | str,
    store: LocalCacheStore,
    token: str | None = None,
    cache_path: Path | None = None,
    reporter: ProgressReporter | None = None,
    timeout: float = DOWNLOAD_TIMEOUT,
    api_host: str = GITHUB_API_HOST,
) -> Path:
    """Download an app asset and optionally move it into the cache.

    Android assets are APKs used as-is. iOS assets are tarballs that are
    extracted, after which the '.app' bundle is located.

    Args:
        client: HTTPX client instance.
        url: API URL of the asset.
        platform: Target platform.
        store: Local cache store providing scratch and cache locations.
        token: GitHub token.
        cache_path: Cache path to move the app to, if caching.
        reporter: Progress reporter.
        timeout: Download timeout in seconds.
        api_host: Host name of the GitHub API.

    Returns:
        Path to the app (the cache path when caching).

    Raises:
        DownloadError: If the download fails.
        ExtractionError: If extraction fails.
        ArtifactNotFoundError: If the archive holds no app.
    """
    reporter = reporter or NullReporter()
    platform = Platform(platform)
    output_dir = store.make_work_dir("download-")

    try:
        if platform is Platform.ANDROID:
            apk_path = output_dir / f"{uuid.uuid4().hex}.apk"
            reporter.info("Downloading Android APK")
            download_file(
                client, url, apk_path, token=token, reporter=reporter,
                timeout=timeout, api_host=api_host,
            )
            app_path = _maybe_cache(store, apk_path, cache_path, reporter)
        else:
            archive_dir = store.make_work_dir("archive-")
            try:
                archive_path = archive_dir / f"{uuid.uuid4().hex}.tar.gz"
                reporter.info("Downloading iOS app archive")
                download_file(
                    client, url, archive_path, token=token, reporter=reporter,
                    timeout=timeout, api_host=api_host,
                )
                reporter.success("Successfully downloaded app archive")

                reporter.start_progress("Extracting app archive")
                extract_archive(archive_path, output_dir, reporter=reporter)
                reporter.stop_progress("Archive extracted successfully")
            finally:
                shutil.rmtree(archive_dir, ignore_errors=True)

            found = locate_app(output_dir, platform.app_extension)
            app_path = _maybe_cache(store, found, cache_path, reporter)
    except BaseException:
        reporter.stop_progress("")
        shutil.rmtree(output_dir, ignore_errors=True)
        raise

    if cache_path is not None:
        shutil.rmtree(output_dir, ignore_errors=True)
    return app_path


def extract_app_from_local_archive(
    archive_path: Path,
    platform: Platform | str,
    store: LocalCacheStore,
    reporter: ProgressReporter | None = None,
) -> Path:
    """Extract an app from a local tarball.

    Args:
        archive_path: Path to the local archive.
        platform: Target platform.
        store: Local cache store providing scratch locations.
        reporter: Progress reporter.

    Returns:
        Path to the extracted app.

    Raises:
        ExtractionError: If extraction fails.
        ArtifactNotFoundError: If the archive holds no app.
    """
    reporter = reporter or NullReporter()
    platform = Platform(platform)
    output_dir = store.make_work_dir("extract-")

    reporter.start_progress(f"Extracting {platform.value} app from local archive")
    try:
        extract_archive(archive_path, output_dir, reporter=reporter)
        app_path = locate_app(output_dir, platform.app_extension)
    except BaseException:
        reporter.stop_progress("Extraction failed", success=False)
        shutil.rmtree(output_dir, ignore_errors=True)
        raise
    reporter.stop_progress("Archive extracted successfully")
    return app_path


__all__ = [
    "DOWNLOAD_CHUNK_SIZE",
    "DOWNLOAD_TIMEOUT",
    "GITHUB_API_HOST",
    "ArtifactNotFoundError",
    "DownloadError",
    "DownloadResult",
    "ExtractionError",
    "auth_headers",
    "download_and_extract_app",
    "download_file",
    "extract_app_from_local_archive",
    "extract_archive",
    "locate_app",
]
