"""Thin CLI wrapper for kernel_rebuild.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from pydantic import ValidationError
from pydantic_settings import SettingsError as SettingsSourceError
from rich.console import Console
from rich.logging import RichHandler

from kernel_rebuild import __version__
from kernel_rebuild.config import Settings, get_settings, print_settings_json
from kernel_rebuild.errors import KernelRebuildError, PatchError, SettingsError
from kernel_rebuild.profiles.io import load_profile, resolve_overlay
from kernel_rebuild.profiles.schema import KernelProfileSchema

app = typer.Typer(
    name="kernel-rebuild",
    help="Kernel rebuild - fetch, patch, configure and compile a Linux kernel in a container",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"kernel-rebuild version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Route log records to stderr through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
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
) -> None:
    """Kernel rebuild - fetch, patch, configure and compile a Linux kernel."""
    configure_logging(_get_settings().log_level)


def _fail(error: KernelRebuildError) -> NoReturn:
    err_console.print(
        f"Error [{error.code}]: {error.message}",
        style="red",
        markup=False,
        highlight=False,
    )
    if isinstance(error, PatchError) and error.applied:
        names = ", ".join(p.name for p in error.applied)
        err_console.print(f"  Already applied (not rolled back): {names}")
    raise typer.Exit(code=1) from None


def _get_settings() -> Settings:
    try:
        return get_settings()
    except (ValidationError, SettingsSourceError) as e:
        _fail(SettingsError(f"Invalid settings:\n{e}"))


def _settings_with_profile(profile_path: Path | None) -> Settings:
    settings = _get_settings()
    if profile_path is not None:
        settings = settings.model_copy(update={"profile_path": profile_path})
    return settings


def _load_profile(settings: Settings) -> KernelProfileSchema | None:
    if settings.profile_path is None:
        return None
    return load_profile(settings.profile_path)


ProfileOption = Annotated[
    Path | None,
    typer.Option("--profile", "-p", help="Build profile (YAML/JSON)"),
]


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = _get_settings()
    if json_output:
        console.print(print_settings_json(settings))
        return

    def show(value: object) -> str:
        return "(not set)" if value is None else str(value)

    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Source:[/bold]")
    console.print(f"  Kernel version:      {settings.kernel_version}")
    console.print(f"  Kernel URL:          {show(settings.kernel_url)}")
    console.print(f"  Mirror:              {settings.kernel_base_url}")
    console.print(f"  Verify checksum:     {settings.verify_checksum}")
    console.print(f"  Profile:             {show(settings.profile_path)}")
    console.print()
    console.print("[bold]Compilation:[/bold]")
    console.print(f"  Image target:        {settings.image_target}")
    console.print(f"  Build modules:       {settings.build_modules}")
    console.print(f"  Jobs:                {show(settings.jobs)}")
    console.print(f"  Build identity:      {settings.build_user}@{settings.build_host}")
    console.print()
    console.print("[bold]Container:[/bold]")
    console.print(f"  Executable:          {show(settings.container_executable)}")
    console.print(f"  Probe order:         {', '.join(settings.container_choices)}")
    console.print(f"  Image tag:           {settings.container_tag}")
    console.print(f"  Base image:          {settings.container_base_image}")
    console.print(f"  Temp root:           {settings.tmp_root}")
    console.print(f"  Fallback directory:  {show(settings.fallback_dir)}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Log level:           {settings.log_level}")
    console.print(f"  Download timeout:    {settings.download_timeout}")
    console.print(f"  Build timeout:       {show(settings.build_timeout)}")


@app.command()
def overlay(
    profile: ProfileOption = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Print the effective configuration overlay."""
    settings = _settings_with_profile(profile)
    try:
        effective = resolve_overlay(_load_profile(settings))
    except KernelRebuildError as e:
        _fail(e)

    if json_output:
        typer.echo(json.dumps(effective.as_dict(), indent=2))
    else:
        typer.echo(effective.render(), nl=False)


@app.command()
def build(
    profile: ProfileOption = None,
) -> None:
    """Fetch, patch, configure and compile the kernel (runs in the container)."""
    from kernel_rebuild.builds.service import build_kernel, running_in_container

    settings = _settings_with_profile(profile)
    if not running_in_container():
        logger.warning("Not running in the build container; building on this host")

    try:
        result = build_kernel(settings, _load_profile(settings))
    except KernelRebuildError as e:
        _fail(e)

    console.print(f"[green]✓ Kernel built: {result.artifacts.boot_image}[/green]")
    if result.artifacts.modules_dir is not None:
        console.print(f"  Modules: {result.artifacts.modules_dir}")
    if result.boot_image_sha256:
        console.print(f"  SHA256: {result.boot_image_sha256[:16]}...")
    if result.source_sha256:
        console.print(f"  Source SHA256: {result.source_sha256[:16]}...")
    for mismatch in result.overlay_mismatches:
        console.print(
            f"  [yellow]{mismatch.option}: requested {mismatch.requested}, "
            f"got {mismatch.actual or 'unset'}[/yellow]"
        )


@app.command()
def rebuild(
    container_executable: Annotated[
        str | None,
        typer.Option(
            "--container-executable",
            "--overwrite-container-executable",
            help="Container executable to use instead of probing podman/docker",
        ),
    ] = None,
    profile: ProfileOption = None,
) -> None:
    """Build the kernel in a container and install it into this tree."""
    from kernel_rebuild.container.service import rebuild_kernel

    settings = _settings_with_profile(profile)
    try:
        result = rebuild_kernel(
            settings,
            _load_profile(settings),
            container_executable=container_executable,
        )
    except KernelRebuildError as e:
        _fail(e)

    console.print(
        f"[green]✓ Kernel installed: {result.artifacts.boot_image}[/green]"
    )
    if result.artifacts.modules_dir is not None:
        console.print(f"  Modules: {result.artifacts.modules_dir}")
    console.print(f"  Runtime: {result.runtime.name}")


if __name__ == "__main__":
    app()
