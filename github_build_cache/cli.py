"""Thin CLI wrapper for github_build_cache.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from github_build_cache import __version__
from github_build_cache.config import get_settings, print_settings_json
from github_build_cache.types import BuildProps, Platform, RunOptions, StoreConfig

app = typer.Typer(
    name="github-build-cache",
    help="GitHub Build Cache - store and fetch app builds on GitHub Releases",
    no_args_is_help=True,
)
console = Console()

PlatformOption = Annotated[
    Platform,
    typer.Option("--platform", "-p", help="Target platform"),
]
ProjectRootOption = Annotated[
    Path,
    typer.Option("--project-root", help="Project root containing package.json"),
]
VariantOption = Annotated[
    str | None,
    typer.Option("--variant", help="Android build variant (e.g. debug)"),
]
ConfigurationOption = Annotated[
    str | None,
    typer.Option("--configuration", help="iOS build configuration (e.g. Debug)"),
]
OwnerOption = Annotated[
    str,
    typer.Option("--owner", envvar="GH_BUILD_CACHE_OWNER", help="Repository owner"),
]
RepoOption = Annotated[
    str,
    typer.Option("--repo", envvar="GH_BUILD_CACHE_REPO", help="Repository name"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def _print_json(data: dict) -> None:
    # No wrapping, so the output stays machine-readable
    console.print(json.dumps(data, indent=2), soft_wrap=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"github-build-cache version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """GitHub Build Cache - store and fetch app builds on GitHub Releases."""
    # stdout carries command output; logs go to stderr
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@app.command()
def config(json_output: JsonOption = False) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings), soft_wrap=True)
        return

    from github_build_cache.cache.store import LocalCacheStore

    store = LocalCacheStore(settings.cache_root)
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]GitHub:[/bold]")
    console.print(f"  API URL:             {settings.api_url}")
    console.print(f"  Uploads URL:         {settings.uploads_url}")
    console.print(f"  Token:               {'set' if settings.token_value() else 'not set'}")
    console.print(f"  Branch candidates:   {', '.join(settings.branch_candidates)}")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  Cache directory:     {store.cache_dir}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Log level:           {settings.log_level}")
    console.print()
    console.print("[bold]Timeouts (seconds):[/bold]")
    console.print(f"  Request timeout:     {settings.request_timeout}")
    console.print(f"  Download timeout:    {settings.download_timeout}")
    console.print(f"  Upload timeout:      {settings.upload_timeout}")


def _props(
    fingerprint: str,
    platform: Platform,
    project_root: Path,
    variant: str | None,
    configuration: str | None,
    build_path: Path | None = None,
) -> BuildProps:
    return BuildProps(
        project_root=project_root,
        platform=platform,
        fingerprint_hash=fingerprint,
        run_options=RunOptions(
            build_cache=True, variant=variant, configuration=configuration
        ),
        build_path=build_path,
    )


@app.command()
def tag(
    fingerprint: Annotated[str, typer.Argument(help="Project fingerprint hash")],
    platform: PlatformOption,
    project_root: ProjectRootOption = Path("."),
    variant: VariantOption = None,
    configuration: ConfigurationOption = None,
) -> None:
    """Print the cache tag for a build."""
    from github_build_cache.cache.tag import BuildKey

    key = BuildKey.from_props(
        _props(fingerprint, platform, project_root, variant, configuration)
    )
    console.print(key.tag)


@app.command()
def resolve(
    fingerprint: Annotated[str, typer.Argument(help="Project fingerprint hash")],
    platform: PlatformOption,
    owner: OwnerOption,
    repo: RepoOption,
    project_root: ProjectRootOption = Path("."),
    variant: VariantOption = None,
    configuration: ConfigurationOption = None,
    json_output: JsonOption = False,
) -> None:
    """Fetch a cached build, printing its local path."""
    from github_build_cache.provider import GitHubBuildCacheProvider
    from github_build_cache.reporter import ConsoleReporter

    settings = get_settings()
    provider = GitHubBuildCacheProvider(settings, reporter=ConsoleReporter())
    props = _props(fingerprint, platform, project_root, variant, configuration)
    outcome = provider.resolve_outcome(
        props, StoreConfig(owner=owner, repo=repo), settings.token_value()
    )

    if json_output:
        _print_json(
            {
                "status": outcome.status.value,
                "path": outcome.value,
                "message": outcome.message,
                "code": outcome.code,
            }
        )
    elif outcome.ok:
        console.print(outcome.value, soft_wrap=True)
    else:
        console.print(f"[yellow]No cached build: {outcome.message}[/yellow]")

    if not outcome.ok:
        raise typer.Exit(code=1)


@app.command()
def upload(
    fingerprint: Annotated[str, typer.Argument(help="Project fingerprint hash")],
    build_path: Annotated[Path, typer.Argument(help="Built app (.apk file or .app directory)")],
    platform: PlatformOption,
    owner: OwnerOption,
    repo: RepoOption,
    project_root: ProjectRootOption = Path("."),
    variant: VariantOption = None,
    configuration: ConfigurationOption = None,
    json_output: JsonOption = False,
) -> None:
    """Upload a build, printing its download URL."""
    from github_build_cache.provider import GitHubBuildCacheProvider
    from github_build_cache.reporter import ConsoleReporter

    settings = get_settings()
    provider = GitHubBuildCacheProvider(settings, reporter=ConsoleReporter())
    props = _props(
        fingerprint, platform, project_root, variant, configuration, build_path
    )
    outcome = provider.upload_outcome(
        props, StoreConfig(owner=owner, repo=repo), settings.token_value()
    )

    if json_output:
        _print_json(
            {
                "status": outcome.status.value,
                "url": outcome.value,
                "message": outcome.message,
                "code": outcome.code,
            }
        )
    elif outcome.ok:
        console.print(outcome.value, soft_wrap=True)
    else:
        console.print(f"[red]Upload failed: {outcome.message}[/red]")

    if not outcome.ok:
        raise typer.Exit(code=1)


cache_app = typer.Typer(help="Inspect and prune the local build cache")
app.add_typer(cache_app, name="cache")


def _local_store():
    from github_build_cache.cache.store import LocalCacheStore

    return LocalCacheStore(get_settings().cache_root)


@cache_app.command("path")
def cache_path() -> None:
    """Print the local cache directory."""
    console.print(str(_local_store().cache_dir), soft_wrap=True)


@cache_app.command("info")
def cache_info(json_output: JsonOption = False) -> None:
    """Show cached builds and total size."""
    store = _local_store()
    entries = store.list_entries()
    total = store.size_bytes()

    if json_output:
        output = {
            "cache_dir": str(store.cache_dir),
            "entries": [e.name for e in entries],
            "total_size_bytes": total,
        }
        _print_json(output)
        return

    console.print(f"[bold]Cache directory:[/bold] {store.cache_dir}")
    console.print(f"[bold]Cached builds:[/bold] {len(entries)}")
    for entry in entries:
        console.print(f"  {entry.name}")
    console.print(f"[bold]Total size:[/bold] {total / 1024 / 1024:.1f} MB")


@cache_app.command("clear")
def cache_clear(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation"),
    ] = False,
) -> None:
    """Remove all locally cached builds."""
    store = _local_store()
    if not yes:
        typer.confirm(f"Remove all cached builds in {store.cache_dir}?", abort=True)
    removed = store.clear()
    console.print(f"[green]✓ Removed {removed} cached build(s)[/green]")


if __name__ == "__main__":
    app()
