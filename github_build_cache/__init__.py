"""GitHub Build Cache - remote build cache for mobile app builds.

This package stores and retrieves built application binaries (iOS app
bundles, Android APKs) as GitHub Release assets, keyed by a tag derived
from the project fingerprint, platform, and build variant.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
