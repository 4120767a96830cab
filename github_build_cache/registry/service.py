"""GitHub release registry.

This module provides the protocol layer against the GitHub REST API:
- Resolving the default branch head commit
- Creating or reusing an annotated tag and its ref
- Creating or reusing the release for that tag
- Uploading an asset to the release
- Fetching release assets by tag for cache lookup

No state is kept between calls; every upload re-reads the repository.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from github_build_cache.config import GITHUB_API_URL, GITHUB_UPLOADS_URL
from github_build_cache.registry.models import Release, ReleaseHandle, RemoteAsset
from github_build_cache.reporter import NullReporter, ProgressReporter
from github_build_cache.transfer.package import PackagedArtifact, package_if_directory

logger = logging.getLogger(__name__)

T = TypeVar("T")

GITHUB_API_VERSION = "2022-11-28"

# Common default branch names in order of modern popularity
DEFAULT_BRANCH_CANDIDATES = ("main", "master")

# Timeout for API requests (seconds)
REQUEST_TIMEOUT = 30

# Timeout for asset uploads (seconds)
UPLOAD_TIMEOUT = 3600


class RegistryError(Exception):
    """Raised when a GitHub API call fails."""

    def __init__(
        self,
        message: str,
        code: str = "registry_error",
        status_code: int | None = None,
    ) -> None:
        """Initialize RegistryError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
            status_code: HTTP status of the failed response, if any.
        """
        super().__init__(message)
        self.code = code
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        """Whether the API answered 404."""
        return self.status_code == 404


class DefaultBranchNotFoundError(RegistryError):
    """Raised when none of the candidate default branches exist."""

    def __init__(self, full_name: str, candidates: tuple[str, ...]) -> None:
        super().__init__(
            f"Could not find any default branch in {full_name} "
            f"(tried {', '.join(candidates)})",
            code="default_branch_not_found",
        )
        self.candidates = candidates


class ReleaseNotFoundError(RegistryError):
    """Raised when no release exists for a tag (a cache miss, not a failure)."""

    def __init__(self, tag: str) -> None:
        super().__init__(
            f"No release found with tag {tag}",
            code="no_release",
            status_code=404,
        )
        self.tag = tag


class ReleaseInconsistencyError(RegistryError):
    """Raised when a tag exists but its release does not."""

    def __init__(self, tag: str) -> None:
        super().__init__(
            f"Tag {tag} exists but has no release",
            code="release_inconsistent",
            status_code=404,
        )
        self.tag = tag


def _status_code_name(status: int) -> str:
    if status == 404:
        return "not_found"
    if status in (401, 403):
        return "auth_error"
    if status == 422:
        return "unprocessable"
    return "http_error"


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase


def create_registry_client(
    token: str,
    api_url: str = GITHUB_API_URL,
    timeout: float = REQUEST_TIMEOUT,
) -> httpx.Client:
    """Create an HTTPX client for the GitHub REST API.

    Args:
        token: GitHub token.
        api_url: Base URL of the API.
        timeout: Default request timeout in seconds.

    Returns:
        Configured client; the caller closes it.
    """
    return httpx.Client(
        base_url=api_url,
        headers={
            "Accept": "application/vnd.github+json",
            "Authorization": f"token {token}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        },
        timeout=timeout,
        follow_redirects=True,
    )


class ReleaseRegistry:
    """Release and tag operations for one repository."""

    def __init__(
        self,
        client: httpx.Client,
        owner: str,
        repo: str,
        reporter: ProgressReporter | None = None,
        branch_candidates: tuple[str, ...] | list[str] = DEFAULT_BRANCH_CANDIDATES,
        uploads_url: str = GITHUB_UPLOADS_URL,
        upload_timeout: float = UPLOAD_TIMEOUT,
    ) -> None:
        self.client = client
        self.owner = owner
        self.repo = repo
        self.reporter = reporter or NullReporter()
        self.branch_candidates = tuple(branch_candidates)
        self.uploads_url = uploads_url.rstrip("/")
        self.upload_timeout = upload_timeout

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def _repo_path(self) -> str:
        return f"/repos/{quote(self.owner, safe='')}/{quote(self.repo, safe='')}"

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise RegistryError(
                f"Timeout calling {method} {url}",
                code="timeout",
            ) from e
        except httpx.RequestError as e:
            raise RegistryError(
                f"Network error calling {method} {url}: {e}",
                code="network_error",
            ) from e

        if response.is_error:
            raise RegistryError(
                f"{method} {url} failed: {response.status_code} {_error_detail(response)}",
                code=_status_code_name(response.status_code),
                status_code=response.status_code,
            )
        return response

    def _decode(self, response: httpx.Response, parse: Callable[[Any], T]) -> T:
        """Parse a successful response body, wrapping malformed payloads."""
        try:
            return parse(response.json())
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            request = response.request
            raise RegistryError(
                f"Unexpected response from {request.method} {request.url}: {e}",
                code="invalid_response",
                status_code=response.status_code,
            ) from e

    def resolve_default_commit(self) -> str:
        """Return the head commit SHA of the repository's default branch.

        Candidate branch names are tried in order; a missing branch moves
        on to the next candidate, any other failure aborts.

        Raises:
            DefaultBranchNotFoundError: If no candidate branch exists.
            RegistryError: On any other API failure.
        """
        for branch in self.branch_candidates:
            self.reporter.update_progress(f"Detecting branch: {branch}")
            try:
                response = self._request(
                    "GET", f"{self._repo_path}/branches/{quote(branch, safe='')}"
                )
            except RegistryError as e:
                if e.is_not_found:
                    logger.debug("Branch %s not found in %s", branch, self.full_name)
                    continue
                raise
            sha = self._decode(response, lambda body: str(body["commit"]["sha"]))
            logger.info("Using %s@%s", branch, sha[:7])
            return sha

        raise DefaultBranchNotFoundError(self.full_name, self.branch_candidates)

    def get_tag_sha(self, tag: str) -> str | None:
        """Return the object SHA of a tag ref, or None if it does not exist."""
        try:
            response = self._request(
                "GET", f"{self._repo_path}/git/ref/tags/{quote(tag, safe='')}"
            )
        except RegistryError as e:
            if e.is_not_found:
                return None
            raise
        return self._decode(response, lambda body: str(body["object"]["sha"]))

    def ensure_tag(self, tag: str, commit_sha: str) -> tuple[str, bool]:
        """Create an annotated tag on a commit unless it already exists.

        Args:
            tag: Tag name.
            commit_sha: Commit to tag.

        Returns:
            Tuple of (tag object SHA, whether the tag already existed).

        Raises:
            RegistryError: On API failure.
        """
        existing = self.get_tag_sha(tag)
        if existing is not None:
            logger.info("Tag %s already exists (%s)", tag, existing[:7])
            return existing, True

        response = self._request(
            "POST",
            f"{self._repo_path}/git/tags",
            json={
                "tag": tag,
                "message": tag,
                "object": commit_sha,
                "type": "commit",
            },
        )
        tag_sha = self._decode(response, lambda body: str(body["sha"]))

        try:
            self._request(
                "POST",
                f"{self._repo_path}/git/refs",
                json={"ref": f"refs/tags/{tag}", "sha": tag_sha},
            )
        except RegistryError as e:
            if e.status_code != 422:
                raise
            # Lost a race with a concurrent upload for the same tag
            raced = self.get_tag_sha(tag)
            if raced is None:
                raise
            logger.warning("Tag %s was created concurrently, reusing it", tag)
            return raced, True

        logger.info("Created tag %s (%s)", tag, tag_sha[:7])
        return tag_sha, False

    def get_release_by_tag(self, tag: str) -> Release:
        """Fetch the release for a tag.

        Raises:
            RegistryError: On API failure (404 if there is no release).
        """
        response = self._request(
            "GET", f"{self._repo_path}/releases/tags/{quote(tag, safe='')}"
        )
        return self._decode(response, Release.model_validate)

    def ensure_release(self, tag: str, tag_existed: bool) -> ReleaseHandle:
        """Reuse the release of an existing tag, or create a pre-release.

        Args:
            tag: Tag name.
            tag_existed: Whether ensure_tag found an existing tag.

        Returns:
            ReleaseHandle for the upload.

        Raises:
            ReleaseInconsistencyError: If the tag existed but has no release.
            RegistryError: On API failure.
        """
        if tag_existed:
            try:
                release = self.get_release_by_tag(tag)
            except RegistryError as e:
                if e.is_not_found:
                    raise ReleaseInconsistencyError(tag) from e
                raise
            logger.info("Found existing release %d for tag %s", release.id, tag)
            return ReleaseHandle.from_release(release, already_existed=True)

        response = self._request(
            "POST",
            f"{self._repo_path}/releases",
            json={
                "tag_name": tag,
                "name": tag,
                "draft": False,
                "prerelease": True,
            },
        )
        release = self._decode(response, Release.model_validate)
        logger.info("Created release %d for tag %s", release.id, tag)
        return ReleaseHandle.from_release(release, already_existed=False)

    def _upload_endpoint(self, handle: ReleaseHandle) -> str:
        if handle.upload_url:
            # Strip the RFC 6570 template suffix, e.g. '{?name,label}'
            return handle.upload_url.split("{", 1)[0]
        return f"{self.uploads_url}{self._repo_path}/releases/{handle.release_id}/assets"

    def delete_asset(self, asset_id: int) -> None:
        """Delete a release asset."""
        self._request("DELETE", f"{self._repo_path}/releases/assets/{asset_id}")

    def rename_asset(self, asset_id: int, name: str) -> RemoteAsset:
        """Rename a release asset."""
        response = self._request(
            "PATCH",
            f"{self._repo_path}/releases/assets/{asset_id}",
            json={"name": name},
        )
        return self._decode(response, RemoteAsset.model_validate)

    def _post_asset(
        self, handle: ReleaseHandle, artifact: PackagedArtifact, name: str
    ) -> RemoteAsset:
        with artifact.file_path.open("rb") as f:
            response = self._request(
                "POST",
                self._upload_endpoint(handle),
                params={"name": name},
                content=f,
                headers={
                    "Content-Type": "application/octet-stream",
                    "Content-Length": str(artifact.size_bytes),
                },
                timeout=self.upload_timeout,
            )
        return self._decode(response, RemoteAsset.model_validate)

    def upload_asset(self, handle: ReleaseHandle, artifact: PackagedArtifact) -> RemoteAsset:
        """Upload a file as a release asset.

        An asset with the same name on a reused release is replaced. The new
        file is uploaded under a staging name first, so the old asset is only
        deleted once its replacement is stored.

        Args:
            handle: Target release.
            artifact: File to upload.

        Returns:
            The uploaded asset.

        Raises:
            RegistryError: On API failure.
        """
        replaced = [
            asset
            for asset in handle.assets
            if asset.name == artifact.asset_name and asset.id is not None
        ]

        size_mb = artifact.size_bytes / 1024 / 1024
        self.reporter.update_progress(f"Uploading {artifact.asset_name} ({size_mb:.2f} MB)")

        if not replaced:
            return self._post_asset(handle, artifact, artifact.asset_name)

        staging_name = f"{uuid.uuid4().hex}.{artifact.asset_name}"
        staged = self._post_asset(handle, artifact, staging_name)
        if staged.id is None:
            raise RegistryError(
                f"Upload of {staging_name} returned no asset ID",
                code="invalid_response",
            )

        for asset in replaced:
            logger.info("Replacing existing asset %s", asset.name)
            self.delete_asset(asset.id)
        return self.rename_asset(staged.id, artifact.asset_name)

    def fetch_assets_by_tag(self, tag: str) -> list[RemoteAsset]:
        """Return the assets of the release for a tag.

        Raises:
            ReleaseNotFoundError: If there is no release for the tag.
            RegistryError: On any other API failure.
        """
        try:
            release = self.get_release_by_tag(tag)
        except RegistryError as e:
            if e.is_not_found:
                raise ReleaseNotFoundError(tag) from e
            self.reporter.error(f"Error accessing GitHub release for tag {tag}", e)
            raise
        return release.assets

    def publish(self, tag: str, binary_path: Path, work_dir: Path) -> str:
        """Tag, release and upload a build artifact.

        Args:
            tag: Cache tag.
            binary_path: Build artifact (file or directory).
            work_dir: Scratch directory for packaging.

        Returns:
            Public download URL of the uploaded asset.

        Raises:
            RegistryError: On API failure.
            PackagingError: If the artifact cannot be packaged.
        """
        self.reporter.start_progress(f"Getting commit SHA from repository {self.full_name}")
        commit_sha = self.resolve_default_commit()
        self.reporter.stop_progress(f"Found commit SHA: {commit_sha[:7]}")

        self.reporter.start_progress(f"Ensuring tag {tag} exists")
        _, existed = self.ensure_tag(tag, commit_sha)
        self.reporter.stop_progress(
            f"Tag {'already exists' if existed else 'created successfully'}"
        )

        self.reporter.start_progress(
            f"{'Getting existing' if existed else 'Creating new'} release for tag {tag}"
        )
        handle = self.ensure_release(tag, existed)
        self.reporter.stop_progress(f"Using release with ID: {handle.release_id}")

        artifact = package_if_directory(binary_path, work_dir)
        self.reporter.start_progress("Uploading asset to release")
        try:
            asset = self.upload_asset(handle, artifact)
        finally:
            artifact.cleanup()
        self.reporter.stop_progress("Asset uploaded successfully")

        if not asset.browser_download_url:
            raise RegistryError(
                f"Upload of {artifact.asset_name} returned no download URL",
                code="missing_download_url",
            )
        return asset.browser_download_url


__all__ = [
    "DEFAULT_BRANCH_CANDIDATES",
    "GITHUB_API_VERSION",
    "DefaultBranchNotFoundError",
    "RegistryError",
    "ReleaseInconsistencyError",
    "ReleaseNotFoundError",
    "ReleaseRegistry",
    "create_registry_client",
]
