"""Thin CLI wrapper for stackbuild.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from stackbuild import __version__
from stackbuild.config import get_settings, print_settings_json
from stackbuild.types import LogLevel

if TYPE_CHECKING:
    from stackbuild.builds.git_cache import GitCache
    from stackbuild.builds.remote_cache import RemoteCache
    from stackbuild.software.models import Project

app = typer.Typer(
    name="stackbuild",
    help="stackbuild - build ordering and caching for software distributions",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

ProjectArg = Annotated[Path, typer.Argument(help="Path to project file (YAML/JSON)")]
JsonOpt = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"stackbuild version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


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
    log_level: Annotated[
        LogLevel | None,
        typer.Option(
            "--log-level",
            case_sensitive=False,
            help="Override the configured log level",
        ),
    ] = None,
) -> None:
    """stackbuild - build ordering and caching for software distributions."""
    configure_logging(log_level.value if log_level else get_settings().log_level)


def _load(path: Path) -> "Project":
    """Load a project file, exiting with a message on failure."""
    import yaml
    from pydantic import ValidationError

    from stackbuild.errors import StackbuildError
    from stackbuild.software.io import load_project

    if not path.exists():
        err_console.print(f"[red]Project file not found: {path}[/red]")
        raise typer.Exit(code=1)

    try:
        return load_project(path)
    except ValidationError as e:
        err_console.print("[red]Invalid project file:[/red]")
        err_console.print(str(e))
        raise typer.Exit(code=1) from None
    except (StackbuildError, ValueError, yaml.YAMLError) as e:
        err_console.print(f"[red]Failed to load project: {e}[/red]")
        raise typer.Exit(code=1) from None


def _fail(e: Exception) -> typer.Exit:
    err_console.print(f"[red]Error: {e}[/red]")
    return typer.Exit(code=1)


@app.command()
def config(json_output: JsonOpt = False) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        typer.echo(print_settings_json(settings))
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Cache directory:     {settings.cache_dir}")
        console.print(f"  Git cache:           {settings.git_cache_dir}")
        console.print(f"  Downloads:           {settings.download_dir}")
        console.print()
        console.print("[bold]Remote cache:[/bold]")
        console.print(f"  URL:                 {settings.remote_cache_url or '(none)'}")
        console.print(f"  Max transfers:       {settings.max_concurrent_fetches}")
        console.print(f"  Download timeout:    {settings.download_timeout}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")


@app.command()
def order(
    project_file: ProjectArg,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Fail on dependencies that are not defined"),
    ] = False,
    json_output: JsonOpt = False,
) -> None:
    """Show the order in which components will be built."""
    from stackbuild.builds.resolver import build_order
    from stackbuild.errors import ConfigurationError

    project = _load(project_file)
    try:
        components = build_order(project.library, project, strict=strict)
    except ConfigurationError as e:
        raise _fail(e) from None

    if json_output:
        output = [{"name": c.name, "version": c.version} for c in components]
        typer.echo(json.dumps(output, indent=2))
        return

    console.print(f"[bold]Build order for {project.name}:[/bold]")
    for i, c in enumerate(components, start=1):
        console.print(f"  {i:3d}. [green]{c.name}[/green] {c.version or ''}")


@app.command()
def fingerprint(
    project_file: ProjectArg,
    component: Annotated[
        str | None,
        typer.Argument(help="Component name (all components if omitted)"),
    ] = None,
    json_output: JsonOpt = False,
) -> None:
    """Show the cache fingerprint of components."""
    from stackbuild.builds.fingerprint import fingerprint as compute_fingerprint
    from stackbuild.errors import ComponentNotFoundError

    project = _load(project_file)
    library = project.library
    try:
        components = [library.lookup(component)] if component else library.components
    except ComponentNotFoundError as e:
        raise _fail(e) from None

    tags = {c.name: compute_fingerprint(c, library) for c in components}
    if json_output:
        typer.echo(json.dumps(tags, indent=2))
    else:
        for tag in tags.values():
            console.print(tag, soft_wrap=True)


cache_app = typer.Typer(help="Manage the local incremental cache")
app.add_typer(cache_app, name="cache")

InstallDirOpt = Annotated[
    Path | None,
    typer.Option("--install-dir", help="Override the project's install directory"),
]


def _git_cache(
    project_file: Path, component: str, install_dir: Path | None
) -> "GitCache":
    from stackbuild.builds.git_cache import GitCache
    from stackbuild.errors import ComponentNotFoundError

    project = _load(project_file)
    try:
        software = project.library.lookup(component)
    except ComponentNotFoundError as e:
        raise _fail(e) from None
    return GitCache(
        install_dir or project.install_dir,
        software,
        project.library,
        cache_root=get_settings().cache_dir,
    )


@cache_app.command("restore")
def cache_restore(
    project_file: ProjectArg,
    component: Annotated[str, typer.Argument(help="Component to restore")],
    install_dir: InstallDirOpt = None,
) -> None:
    """Restore the install directory from a component's snapshot.

    Exits with code 2 on a cache miss.
    """
    from stackbuild.errors import StoreError
    from stackbuild.types import CacheResult

    cache = _git_cache(project_file, component, install_dir)
    try:
        result = cache.restore()
    except StoreError as e:
        raise _fail(e) from None

    if result is CacheResult.HIT:
        console.print(
            f"[green]Restored {component} from {cache.tag}[/green]", soft_wrap=True
        )
    else:
        console.print(f"[yellow]No snapshot for {component}[/yellow]")
        raise typer.Exit(code=2)


@cache_app.command("snapshot")
def cache_snapshot(
    project_file: ProjectArg,
    component: Annotated[str, typer.Argument(help="Component just built")],
    install_dir: InstallDirOpt = None,
) -> None:
    """Snapshot the install directory after a component has been built."""
    from stackbuild.errors import StoreError

    cache = _git_cache(project_file, component, install_dir)
    try:
        info = cache.snapshot()
    except StoreError as e:
        raise _fail(e) from None

    for path in info.removed_stores:
        console.print(f"[yellow]Removed embedded git directory {path}[/yellow]")
    console.print(f"[green]Cached {component} as {info.tag}[/green]", soft_wrap=True)


remote_app = typer.Typer(help="Manage the remote artifact cache")
app.add_typer(remote_app, name="remote")


def _remote(project_file: Path) -> "tuple[RemoteCache, list[Any]]":
    from stackbuild.builds.remote_cache import cacheable, create_remote_cache
    from stackbuild.errors import ConfigurationError

    project = _load(project_file)
    try:
        cache = create_remote_cache(get_settings())
    except ConfigurationError as e:
        raise _fail(e) from None
    return cache, cacheable(project.library.components)


def _print_components(components: list[Any], json_output: bool, empty: str) -> None:
    from stackbuild.builds.remote_cache import key_for

    if json_output:
        typer.echo(json.dumps([key_for(c) for c in components], indent=2))
        return
    if not components:
        console.print(f"[yellow]{empty}[/yellow]")
        return
    for c in components:
        console.print(f"  {key_for(c)}", soft_wrap=True)


@remote_app.command("list")
def remote_list(project_file: ProjectArg, json_output: JsonOpt = False) -> None:
    """List components whose source is in the remote cache."""
    from stackbuild.errors import StackbuildError

    cache, components = _remote(project_file)
    with cache:
        try:
            cached = cache.list(components)
        except StackbuildError as e:
            raise _fail(e) from None
    _print_components(cached, json_output, "Nothing cached")


@remote_app.command("missing")
def remote_missing(project_file: ProjectArg, json_output: JsonOpt = False) -> None:
    """List components whose source is not in the remote cache."""
    from stackbuild.errors import StackbuildError

    cache, components = _remote(project_file)
    with cache:
        try:
            missing = cache.missing(components)
        except StackbuildError as e:
            raise _fail(e) from None
    _print_components(missing, json_output, "Nothing missing")


@remote_app.command("fetch")
def remote_fetch(project_file: ProjectArg) -> None:
    """Download missing sources upstream and upload them to the remote cache."""
    from stackbuild.errors import PartialFetchFailure, StackbuildError

    cache, components = _remote(project_file)
    with cache:
        try:
            keys = cache.fetch_missing(components)
        except PartialFetchFailure as e:
            for key in e.succeeded:
                console.print(f"  [green]✓ {key}[/green]", soft_wrap=True)
            for failure in e.failures:
                console.print(f"  [red]✗ {failure}[/red]", soft_wrap=True)
            raise typer.Exit(code=1) from None
        except StackbuildError as e:
            raise _fail(e) from None

    console.print(f"[green]Fetched {len(keys)} artifact(s)[/green]")
    for key in keys:
        console.print(f"  {key}", soft_wrap=True)


@remote_app.command("populate")
def remote_populate(project_file: ProjectArg) -> None:
    """Upload locally downloaded sources missing from the remote cache."""
    from stackbuild.errors import PartialFetchFailure, StackbuildError

    cache, components = _remote(project_file)
    with cache:
        try:
            keys = cache.populate(components)
        except PartialFetchFailure as e:
            for failure in e.failures:
                console.print(f"  [red]✗ {failure}[/red]", soft_wrap=True)
            raise typer.Exit(code=1) from None
        except StackbuildError as e:
            raise _fail(e) from None

    console.print(f"[green]Uploaded {len(keys)} artifact(s)[/green]")


if __name__ == "__main__":
    app()
