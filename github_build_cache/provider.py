"""Build cache provider.

This module provides the high-level cache API used by a build orchestrator:
- resolve(): find a cached build for a fingerprint, locally or on GitHub
- upload(): publish a finished build to GitHub Releases

Cache failures never fail the caller's build. Every path through resolve
and upload ends in a CacheOutcome; the public methods collapse anything
other than OK to None.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import httpx

from github_build_cache.cache.dev_client import ManifestReader, read_package_json
from github_build_cache.cache.store import LocalCacheStore
from github_build_cache.cache.tag import BuildKey
from github_build_cache.config import Settings, get_settings
from github_build_cache.registry.service import (
    RegistryError,
    ReleaseNotFoundError,
    ReleaseRegistry,
    create_registry_client,
)
from github_build_cache.reporter import LoggingReporter, ProgressReporter
from github_build_cache.transfer.download import (
    GITHUB_API_HOST,
    ArtifactNotFoundError,
    DownloadError,
    ExtractionError,
    download_and_extract_app,
)
from github_build_cache.transfer.package import PackagingError
from github_build_cache.types import (
    BuildProps,
    CacheOutcome,
    OutcomeStatus,
    StoreConfig,
)

logger = logging.getLogger(__name__)


def _as_props(props: BuildProps | Mapping[str, Any]) -> BuildProps:
    return props if isinstance(props, BuildProps) else BuildProps.from_mapping(props)


def _as_store(store: StoreConfig | Mapping[str, Any]) -> StoreConfig:
    if isinstance(store, StoreConfig):
        return store
    return StoreConfig(owner=store.get("owner", ""), repo=store.get("repo", ""))


class GitHubBuildCacheProvider:
    """Remote build cache backed by GitHub Releases.

    Args:
        settings: Application settings (uses defaults if not provided).
        reporter: Progress reporter (logs through `logging` if not provided).
        store: Local cache store (derived from settings if not provided).
        client: HTTPX client for the GitHub API (creates one per call if
            not provided; a provided client is used as-is and not closed).
        manifest_reader: Package manifest reader for dev-client detection.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        reporter: ProgressReporter | None = None,
        store: LocalCacheStore | None = None,
        client: httpx.Client | None = None,
        manifest_reader: ManifestReader = read_package_json,
    ) -> None:
        self.settings = settings if settings is not None else get_settings()
        self.reporter = reporter or LoggingReporter(logger)
        self.store = store or LocalCacheStore(self.settings.cache_root)
        self._client = client
        self._manifest_reader = manifest_reader

    def build_key(self, props: BuildProps) -> BuildKey:
        """Compute the cache key for a build."""
        return BuildKey.from_props(props, reader=self._manifest_reader)

    def cached_app_path(self, props: BuildProps) -> Path:
        """Return the local cache path for a build."""
        key = self.build_key(props)
        return self.store.path_for(key.tag, key.platform)

    def _open_client(self, token: str) -> tuple[httpx.Client, bool]:
        if self._client is not None:
            return self._client, False
        client = create_registry_client(
            token,
            api_url=self.settings.api_url,
            timeout=self.settings.request_timeout,
        )
        return client, True

    def _registry(self, client: httpx.Client, store: StoreConfig) -> ReleaseRegistry:
        return ReleaseRegistry(
            client,
            store.owner,
            store.repo,
            reporter=self.reporter,
            branch_candidates=self.settings.branch_candidates,
            uploads_url=self.settings.uploads_url,
            upload_timeout=self.settings.upload_timeout,
        )

    def _missing_credential(self) -> CacheOutcome:
        self.reporter.stop_progress("GitHub token not found", success=False)
        self.reporter.error("Missing GITHUB_TOKEN environment variable")
        return CacheOutcome(
            status=OutcomeStatus.MISSING_CREDENTIAL,
            message="Missing GitHub token",
            code="missing_credential",
        )

    def resolve_outcome(
        self,
        props: BuildProps,
        store: StoreConfig,
        token: str | None,
    ) -> CacheOutcome:
        """Look up a cached build.

        Args:
            props: Build context.
            store: Repository holding the cache.
            token: GitHub token, or None.

        Returns:
            CacheOutcome whose value is the app path when status is OK.
        """
        if props.run_options.build_cache is not True:
            self.reporter.info("Build cache is disabled, skipping download")
            return CacheOutcome(
                status=OutcomeStatus.DISABLED,
                message="Build cache is disabled",
            )

        key = self.build_key(props)
        cached_path = self.store.path_for(key.tag, key.platform)

        if self.store.exists(cached_path):
            self.reporter.success("Cached build found, skipping download")
            return CacheOutcome(
                status=OutcomeStatus.OK,
                message="Local cache hit",
                value=str(cached_path),
                details={"tag": key.tag, "source": "local"},
            )

        self.reporter.start_progress(
            "Searching builds with matching fingerprint on GitHub Releases"
        )
        if not token:
            return self._missing_credential()

        client, owns_client = self._open_client(token)
        try:
            registry = self._registry(client, store)
            try:
                assets = registry.fetch_assets_by_tag(key.tag)
            except ReleaseNotFoundError:
                self.reporter.stop_progress(
                    "No cached builds available for this fingerprint", success=False
                )
                return CacheOutcome(
                    status=OutcomeStatus.CACHE_MISS,
                    message=f"No release for tag {key.tag}",
                    code="no_release",
                    details={"tag": key.tag},
                )
            except RegistryError as e:
                self.reporter.stop_progress(f"Cache retrieval failed: {e}", success=False)
                return CacheOutcome(
                    status=OutcomeStatus.FAILED,
                    message=str(e),
                    code=e.code,
                    details={"tag": key.tag},
                )

            if not assets:
                self.reporter.stop_progress("", success=False)
                self.reporter.warn("No assets found for this fingerprint")
                return CacheOutcome(
                    status=OutcomeStatus.CACHE_MISS,
                    message=f"Release {key.tag} has no assets",
                    code="no_assets",
                    details={"tag": key.tag},
                )

            asset = assets[0]
            if not asset.url:
                self.reporter.stop_progress("", success=False)
                self.reporter.warn("Asset URL not found in the release")
                return CacheOutcome(
                    status=OutcomeStatus.CACHE_MISS,
                    message=f"Asset {asset.name} has no URL",
                    code="no_asset_url",
                    details={"tag": key.tag},
                )

            self.reporter.info(
                f"Asset name: {asset.name}, size: {round(asset.size / 1024 / 1024)}MB"
            )
            self.reporter.stop_progress("Build found on GitHub Releases")

            try:
                app_path = download_and_extract_app(
                    client,
                    asset.url,
                    key.platform,
                    self.store,
                    token=token,
                    cache_path=cached_path,
                    reporter=self.reporter,
                    timeout=self.settings.download_timeout,
                    api_host=urlsplit(self.settings.api_url).hostname or GITHUB_API_HOST,
                )
            except (DownloadError, ExtractionError, ArtifactNotFoundError) as e:
                self.reporter.error("Failed to download or extract the app", e)
                return CacheOutcome(
                    status=OutcomeStatus.FAILED,
                    message=str(e),
                    code=e.code,
                    details={"tag": key.tag, "asset": asset.name},
                )
            except OSError as e:
                self.reporter.error("Failed to cache the app", e)
                return CacheOutcome(
                    status=OutcomeStatus.FAILED,
                    message=str(e),
                    code="os_error",
                    details={"tag": key.tag, "asset": asset.name},
                )
        finally:
            if owns_client:
                client.close()

        return CacheOutcome(
            status=OutcomeStatus.OK,
            message="Downloaded from GitHub Releases",
            value=str(app_path),
            details={"tag": key.tag, "source": "remote", "asset": asset.name},
        )

    def upload_outcome(
        self,
        props: BuildProps,
        store: StoreConfig,
        token: str | None,
    ) -> CacheOutcome:
        """Publish a build to GitHub Releases.

        Args:
            props: Build context, with build_path set.
            store: Repository holding the cache.
            token: GitHub token, or None.

        Returns:
            CacheOutcome whose value is the public download URL when status is OK.
        """
        self.reporter.start_progress("Uploading build to GitHub Releases")

        key = self.build_key(props)
        if not token:
            return self._missing_credential()

        build_path = props.build_path
        if build_path is None or not build_path.exists():
            self.reporter.stop_progress("Release failed", success=False)
            self.reporter.error(f"Build artifact not found: {build_path}")
            return CacheOutcome(
                status=OutcomeStatus.FAILED,
                message=f"Build artifact not found: {build_path}",
                code="artifact_missing",
                details={"tag": key.tag},
            )

        client, owns_client = self._open_client(token)
        work_dir = self.store.make_work_dir("upload-")
        try:
            url = self._registry(client, store).publish(key.tag, build_path, work_dir)
        except (RegistryError, PackagingError) as e:
            self.reporter.stop_progress("Release failed", success=False)
            self.reporter.error("Release failed", e)
            return CacheOutcome(
                status=OutcomeStatus.FAILED,
                message=str(e),
                code=e.code,
                details={"tag": key.tag},
            )
        except OSError as e:
            self.reporter.stop_progress("Release failed", success=False)
            self.reporter.error("Release failed", e)
            return CacheOutcome(
                status=OutcomeStatus.FAILED,
                message=str(e),
                code="os_error",
                details={"tag": key.tag},
            )
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)
            if owns_client:
                client.close()

        self.reporter.stop_progress("Build successfully uploaded to GitHub Releases")
        return CacheOutcome(
            status=OutcomeStatus.OK,
            message="Uploaded to GitHub Releases",
            value=url,
            details={"tag": key.tag},
        )

    def resolve(
        self,
        props: BuildProps,
        store: StoreConfig,
        token: str | None,
    ) -> Path | None:
        """Return the path of a cached build, or None to fall back to a full build."""
        try:
            outcome = self.resolve_outcome(props, store, token)
        except Exception as e:
            logger.exception("Unexpected error resolving build cache")
            self.reporter.error("Cache retrieval failed", e)
            return None
        return Path(outcome.value) if outcome.ok and outcome.value else None

    def upload(
        self,
        props: BuildProps,
        store: StoreConfig,
        token: str | None,
    ) -> str | None:
        """Return the public URL of an uploaded build, or None on failure."""
        try:
            outcome = self.upload_outcome(props, store, token)
        except Exception as e:
            logger.exception("Unexpected error uploading build cache")
            self.reporter.error("Release failed", e)
            return None
        return outcome.value if outcome.ok else None

    def resolve_remote_build_cache(
        self,
        props: BuildProps | Mapping[str, Any],
        store: StoreConfig | Mapping[str, Any],
    ) -> str | None:
        """Plugin entry point for cache lookup.

        Takes orchestrator-shaped arguments and reads the token from settings.
        """
        path = self.resolve(_as_props(props), _as_store(store), self.settings.token_value())
        return str(path) if path is not None else None

    def upload_remote_build_cache(
        self,
        props: BuildProps | Mapping[str, Any],
        store: StoreConfig | Mapping[str, Any],
    ) -> str | None:
        """Plugin entry point for cache upload."""
        return self.upload(_as_props(props), _as_store(store), self.settings.token_value())


def resolve_remote_build_cache(
    props: BuildProps | Mapping[str, Any],
    store: StoreConfig | Mapping[str, Any],
) -> str | None:
    """Resolve a cached build with a default provider."""
    return GitHubBuildCacheProvider().resolve_remote_build_cache(props, store)


def upload_remote_build_cache(
    props: BuildProps | Mapping[str, Any],
    store: StoreConfig | Mapping[str, Any],
) -> str | None:
    """Upload a build with a default provider."""
    return GitHubBuildCacheProvider().upload_remote_build_cache(props, store)


__all__ = [
    "GitHubBuildCacheProvider",
    "resolve_remote_build_cache",
    "upload_remote_build_cache",
]
