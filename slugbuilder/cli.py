"""Thin CLI wrapper for slugbuilder.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from slugbuilder import __version__
from slugbuilder.config import get_settings, print_settings_json
from slugbuilder.errors import PRECONDITION

app = typer.Typer(
    name="slugbuilder",
    help="Node Slug Builder - build Node.js apps with signature-gated caching",
    no_args_is_help=True,
)
console = Console()

# Exit codes
EXIT_BUILD_FAILED = 1
EXIT_INVALID_INPUT = 2


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"node-slugbuilder version {__version__}")
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
    """Node Slug Builder - build Node.js apps with signature-gated caching."""


@app.command("compile")
def compile_cmd(
    project_dir: Annotated[Path, typer.Argument(help="Application directory")],
    cache_dir: Annotated[Path, typer.Argument(help="Persistent cache directory")],
    env_dir: Annotated[
        Path, typer.Argument(help="Directory of files, one per exported variable")
    ],
    log_path: Annotated[
        Path | None,
        typer.Option("--log-path", help="Diagnostic log file"),
    ] = None,
    offline: Annotated[
        bool,
        typer.Option("--offline", help="Never download toolchains or bundles"),
    ] = False,
) -> None:
    """Build an application tree, reusing the cache when it is still valid."""
    from slugbuilder.logging_setup import configure_logging
    from slugbuilder.pipeline.orchestrator import run_build
    from slugbuilder.types import BuildContext

    settings = get_settings()
    if offline:
        settings = settings.model_copy(update={"offline": True})
    configure_logging(settings.log_level)

    if not project_dir.is_dir():
        console.print(f"[red]Project directory not found: {project_dir}[/red]")
        raise typer.Exit(code=EXIT_INVALID_INPUT)

    context = BuildContext(
        project_dir=project_dir.resolve(),
        cache_dir=cache_dir.resolve(),
        env_dir=env_dir.resolve(),
        log_path=(log_path or settings.log_path).resolve(),
    )
    context.cache_dir.mkdir(parents=True, exist_ok=True)

    outcome = run_build(context, settings=settings, console=console)
    if outcome.success:
        return
    if outcome.category == PRECONDITION:
        raise typer.Exit(code=EXIT_INVALID_INPUT)
    raise typer.Exit(code=EXIT_BUILD_FAILED)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
        return

    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  Log path:            {settings.log_path}")
    console.print(f"  Cache namespace:     {settings.cache_namespace}")
    console.print(f"  Vendor directory:    {settings.vendor_dir}")
    console.print()
    console.print("[bold]Caching:[/bold]")
    console.print(
        f"  Default directories: {', '.join(settings.default_cache_directories)}"
    )
    console.print(f"  Dependency dir:      {settings.dependency_dir}")
    console.print()
    console.print("[bold]Hooks:[/bold]")
    console.print(f"  Pre-build:           {settings.pre_build_hook}")
    console.print(f"  Post-build:          {settings.post_build_hook}")
    console.print()
    console.print("[bold]Toolchain:[/bold]")
    console.print(f"  Node dist URL:       {settings.node_dist_url}")
    console.print(f"  Resolver URL:        {settings.version_resolver_url}")
    console.print(f"  Default node range:  {settings.default_node_range}")
    console.print(f"  External bundles:    {len(settings.vendor_bundles)}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Offline mode:        {settings.offline}")
    console.print(f"  Log level:           {settings.log_level}")
    console.print(f"  Download timeout:    {settings.download_timeout}")
    console.print(f"  Download retries:    {settings.download_retries}")


cache_app = typer.Typer(help="Inspect and manage the persistent cache")
app.add_typer(cache_app, name="cache")


@cache_app.command("status")
def cache_status(
    cache_dir: Annotated[Path, typer.Argument(help="Persistent cache directory")],
    node_version: Annotated[
        str, typer.Option("--node", help="Resolved Node.js version")
    ],
    npm_version: Annotated[str, typer.Option("--npm", help="Resolved npm version")],
    directories: Annotated[
        list[str] | None,
        typer.Option("--dir", "-d", help="Cached directory (can be repeated)"),
    ] = None,
) -> None:
    """Check whether a cache is valid for a toolchain and directory set."""
    from slugbuilder.cache.signature import (
        SignatureInputs,
        compute_signature,
        signature_status,
    )
    from slugbuilder.cache.store import build_entries
    from slugbuilder.errors import CacheStoreError
    from slugbuilder.types import ToolchainDescriptor

    settings = get_settings()
    try:
        entries = build_entries(
            directories or None, settings.default_cache_directories
        )
    except CacheStoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=EXIT_INVALID_INPUT) from None

    signature = compute_signature(
        SignatureInputs(
            toolchain=ToolchainDescriptor(node_version, npm_version),
            cache_directories=[e.relative_path for e in entries],
        )
    )
    status = signature_status(cache_dir, signature, settings.cache_namespace)
    console.print(f"Signature: {signature}")
    console.print(f"Status:    {status.value}")


@cache_app.command("list")
def cache_list(
    cache_dir: Annotated[Path, typer.Argument(help="Persistent cache directory")],
) -> None:
    """List cached directories."""
    from slugbuilder.cache.store import list_cached

    entries = list_cached(cache_dir, get_settings().cache_namespace)
    if not entries:
        console.print("[yellow]Cache is empty[/yellow]")
        return
    for entry in entries:
        console.print(f"  {entry}")


@cache_app.command("clear")
def cache_clear(
    cache_dir: Annotated[Path, typer.Argument(help="Persistent cache directory")],
) -> None:
    """Remove every cached directory."""
    from slugbuilder.cache.store import clear
    from slugbuilder.errors import CacheStoreError

    try:
        clear(cache_dir, get_settings().cache_namespace)
    except CacheStoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=EXIT_BUILD_FAILED) from None
    console.print(f"[green]Cleared cache at {cache_dir}[/green]")
