"""Cache tag computation.

The tag is used both as the GitHub tag/release name and as the stem of the
local cache filename. Its segment order is part of the contract with tags
already stored in existing repositories; do not reorder.
"""

from __future__ import annotations

from dataclasses import dataclass

from github_build_cache.cache.dev_client import (
    ManifestReader,
    is_dev_client_build,
    read_package_json,
)
from github_build_cache.types import BuildProps, Platform

TAG_PREFIX = "fingerprint"
DEV_CLIENT_SEGMENT = "dev-client"


def encode_tag(fingerprint_hash: str, platform: Platform | str, is_dev_client: bool) -> str:
    """Encode build parameters into a cache tag.

    Args:
        fingerprint_hash: Project fingerprint hash.
        platform: Target platform.
        is_dev_client: Whether the build is a development client build.

    Returns:
        Tag of the form 'fingerprint.<hash>[.dev-client].<platform>'.
    """
    platform_value = Platform(platform).value
    segments = [TAG_PREFIX, fingerprint_hash]
    if is_dev_client:
        segments.append(DEV_CLIENT_SEGMENT)
    segments.append(platform_value)
    return ".".join(segments)


@dataclass(frozen=True)
class BuildKey:
    """Identity of a cached build.

    Attributes:
        fingerprint_hash: Project fingerprint hash.
        platform: Target platform.
        is_dev_client: Derived dev-client flag.
    """

    fingerprint_hash: str
    platform: Platform
    is_dev_client: bool

    @property
    def tag(self) -> str:
        """Serialized tag for this key."""
        return encode_tag(self.fingerprint_hash, self.platform, self.is_dev_client)

    @classmethod
    def from_props(
        cls,
        props: BuildProps,
        reader: ManifestReader = read_package_json,
    ) -> BuildKey:
        """Compute the key for a build, detecting dev-client builds.

        Args:
            props: Build context.
            reader: Package manifest reader.

        Returns:
            BuildKey for the build.
        """
        return cls(
            fingerprint_hash=props.fingerprint_hash,
            platform=props.platform,
            is_dev_client=is_dev_client_build(
                props.project_root, props.run_options, reader=reader
            ),
        )


__all__ = ["DEV_CLIENT_SEGMENT", "TAG_PREFIX", "BuildKey", "encode_tag"]
