"""Cache key and local cache module.

This module handles:
- Tag computation from fingerprint, platform and dev-client flag
- Dev-client build detection from the project manifest
- The local on-disk cache of downloaded builds
"""

from github_build_cache.cache.store import LocalCacheStore
from github_build_cache.cache.tag import BuildKey, encode_tag

__all__ = ["BuildKey", "LocalCacheStore", "encode_tag"]
