"""Allow running as `python -m github_build_cache`."""

from github_build_cache.cli import app

app(prog_name="github-build-cache")
