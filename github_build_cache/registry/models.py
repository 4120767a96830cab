"""Pydantic models for GitHub release API payloads.

Only the fields the cache uses are declared; everything else in the API
response is ignored.
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field


class RemoteAsset(BaseModel):
    """A release asset as reported by the GitHub API.

    Attributes:
        id: Asset ID.
        name: Asset file name.
        url: API URL for fetching the asset bytes (needs auth and an
            'application/octet-stream' Accept header).
        browser_download_url: Public download URL.
        size: Size in bytes.
    """

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    name: str
    url: str | None = None
    browser_download_url: str | None = None
    size: int = Field(default=0, ge=0)
    content_type: str | None = None


class Release(BaseModel):
    """A GitHub release."""

    model_config = ConfigDict(extra="ignore")

    id: int
    tag_name: str
    name: str | None = None
    draft: bool = False
    prerelease: bool = False
    upload_url: str | None = None
    html_url: str | None = None
    assets: list[RemoteAsset] = Field(default_factory=list)


@dataclass
class ReleaseHandle:
    """Release targeted by one upload call.

    Attributes:
        release_id: GitHub release ID.
        tag_name: Tag the release belongs to.
        already_existed: Whether the tag (and release) predated this call.
        upload_url: Upload URL template from the API, if known.
        assets: Assets already attached to the release.
    """

    release_id: int
    tag_name: str
    already_existed: bool
    upload_url: str | None = None
    assets: list[RemoteAsset] = field(default_factory=list)

    @classmethod
    def from_release(cls, release: Release, already_existed: bool) -> "ReleaseHandle":
        """Build a handle from an API release."""
        return cls(
            release_id=release.id,
            tag_name=release.tag_name,
            already_existed=already_existed,
            upload_url=release.upload_url,
            assets=list(release.assets),
        )


__all__ = ["Release", "ReleaseHandle", "RemoteAsset"]
