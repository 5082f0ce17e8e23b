"""
CLI entry point for Capsules.

This module provides the Typer-based command-line interface for Capsules.

Commands:
    list        List all capsules
    console     Start a root console session in a capsule
    exec        Start a capsule and run a command in it as the invoking user
    spin        Create a new capsule
    start       Start a capsule
    stop        Stop a capsule
    delete      Delete a capsule
    doctor      Check the environment capsules depend on

Architecture Note:
    The CLI only parses arguments and renders results. Every lifecycle
    decision lives in capsules.controller.
"""

import json
import logging
import os
import shutil
import sys
import tomllib
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from capsules import __version__
from capsules.config import (
    default_config_path,
    load_config,
    parse_config,
    runtime_executable,
    volumes_root_path,
)
from capsules.controller import LifecycleController
from capsules.errors import CapsulesError
from capsules.layout import bootstrap_root, resolve_identity
from capsules.runtime import PodmanRuntime
from capsules.volumes import parse_volumes

app = typer.Typer(
    name="capsules",
    help="Secure-by-default containers for operating-system hygiene.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

# Stop option parsing at the capsule id so "exec dev1 ls -la" reaches ls
PASSTHROUGH = {"allow_interspersed_args": False}


@dataclass
class CliState:
    """Options shared by every command."""

    config_path: Path | None = None
    debug: bool = False


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]capsules[/bold] version {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    package_logger = logging.getLogger("capsules")
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=err_console, show_time=False, show_path=False)
        )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to capsules.toml. Defaults to ~/.config/capsules/capsules.toml.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Enable verbose output for debugging.",
        ),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Enable debug mode with full error tracebacks.",
        ),
    ] = False,
) -> None:
    """
    Capsules - task-centric containers for operating-system hygiene.

    Each capsule is a long-running podman container named capsule-<id>,
    with its own data volume and a one-shot bootstrap at creation.
    """
    _configure_logging(verbose)
    ctx.obj = CliState(config_path=config_path, debug=debug)


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj if isinstance(ctx.obj, CliState) else CliState()


def _config_path(state: CliState) -> Path | None:
    if state.config_path is not None:
        return state.config_path
    home = os.environ.get("HOME", "").strip()
    return default_config_path(home) if home else None


def _controller(state: CliState) -> LifecycleController:
    config = load_config(_config_path(state))
    return LifecycleController(config, PodmanRuntime(runtime_executable(config)))


def _report_error(error: CapsulesError, debug: bool) -> None:
    """Print an error and, in debug mode, its traceback."""
    console.print(f"[red]{escape(str(error))}[/red]")
    if debug:
        console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")


@app.command("list")
def list_capsules(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
) -> None:
    """
    List all capsules.

    Example:
        $ capsules list
    """
    state = _state(ctx)
    try:
        entries = _controller(state).list()
    except CapsulesError as e:
        _report_error(e, state.debug)
        raise typer.Exit(code=1)

    if json_output:
        output = {
            "count": len(entries),
            "capsules": [
                {
                    "identifier": entry.identifier,
                    "name": entry.name,
                    "image": entry.image,
                    "status": entry.status,
                }
                for entry in entries
            ],
        }
        print(json.dumps(output, indent=2))
        return

    if not entries:
        console.print("[dim]No capsules found.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Image")
    table.add_column("Status")

    for entry in entries:
        if entry.status.lower().startswith(("up", "running")):
            status = f"[green]{escape(entry.status)}[/green]"
        else:
            status = f"[dim]{escape(entry.status)}[/dim]"
        table.add_row(entry.name, entry.image, status)

    console.print(table)


@app.command("console", context_settings=PASSTHROUGH)
def console_session(
    ctx: typer.Context,
    identifier: Annotated[
        str,
        typer.Argument(help="The capsule to open a console in."),
    ],
    command: Annotated[
        Optional[list[str]],
        typer.Argument(help="Command to run as root. Defaults to sh."),
    ] = None,
) -> None:
    """
    Start a console root session.

    The capsule must already be running.

    Example:
        $ capsules console dev1
    """
    state = _state(ctx)
    try:
        return_code = _controller(state).console(identifier, command)
    except CapsulesError as e:
        _report_error(e, state.debug)
        raise typer.Exit(code=1)
    raise typer.Exit(code=return_code)


@app.command("exec", context_settings=PASSTHROUGH)
def exec_command(
    ctx: typer.Context,
    identifier: Annotated[
        str,
        typer.Argument(help="The capsule to run the command in."),
    ],
    command: Annotated[
        Optional[list[str]],
        typer.Argument(help="Command to run. Defaults to sh."),
    ] = None,
) -> None:
    """
    Execute a command in a capsule as the invoking user.

    The capsule is started first if it is stopped.

    Example:
        $ capsules exec dev1 bash
    """
    state = _state(ctx)
    try:
        return_code = _controller(state).exec(identifier, command)
    except CapsulesError as e:
        _report_error(e, state.debug)
        raise typer.Exit(code=1)
    raise typer.Exit(code=return_code)


@app.command()
def spin(
    ctx: typer.Context,
    image: Annotated[
        str,
        typer.Argument(help="Image to create the capsule from."),
    ],
    identifier: Annotated[
        str,
        typer.Argument(help="Name of the new capsule."),
    ],
    volume: Annotated[
        Optional[list[str]],
        typer.Option(
            "--volume",
            "-v",
            metavar="HOST_PATH:CONTAINER_PATH[:MODE]",
            help="Bind mount a volume (can be used multiple times).",
        ),
    ] = None,
    no_init: Annotated[
        bool,
        typer.Option(
            "--no-init",
            "-f",
            help="Skip running the bootstrap init.sh after creation.",
        ),
    ] = False,
) -> None:
    """
    Spin up a new capsule.

    Creates the capsule home, stages ~/.config/capsules/bootstrap/<id>,
    starts the container and runs the bootstrap init.sh as root.

    Example:
        $ capsules spin ubuntu:latest dev1 -v ~/src:/src:rw
    """
    state = _state(ctx)
    try:
        volumes = parse_volumes(volume or [])
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--volume")

    try:
        result = _controller(state).spin(identifier, image, volumes, init=not no_init)
    except CapsulesError as e:
        _report_error(e, state.debug)
        raise typer.Exit(code=1)

    console.print(f"[green]✓[/green] Capsule spun up: [bold]{result.instance_name}[/bold]")
    if result.container_id:
        console.print(f"[dim]  Container: {result.container_id}[/dim]")
    console.print(f"[dim]  Volume: {result.layout.volume_root}[/dim]")
    if result.files_staged:
        console.print(f"[dim]  Bootstrap files staged: {result.files_staged}[/dim]")


def _lifecycle(ctx: typer.Context, identifier: str, action: str) -> None:
    state = _state(ctx)
    controller = _controller(state)
    operation = getattr(controller, action)
    try:
        operation(identifier)
    except CapsulesError as e:
        _report_error(e, state.debug)
        raise typer.Exit(code=1)


@app.command()
def start(
    ctx: typer.Context,
    identifier: Annotated[str, typer.Argument(help="The capsule to start.")],
) -> None:
    """Start a capsule."""
    _lifecycle(ctx, identifier, "start")
    console.print(f"[green]✓[/green] Capsule started: [bold]{identifier}[/bold]")


@app.command()
def stop(
    ctx: typer.Context,
    identifier: Annotated[str, typer.Argument(help="The capsule to stop.")],
) -> None:
    """Stop a capsule."""
    _lifecycle(ctx, identifier, "stop")
    console.print(f"[green]✓[/green] Capsule stopped: [bold]{identifier}[/bold]")


@app.command()
def delete(
    ctx: typer.Context,
    identifier: Annotated[str, typer.Argument(help="The capsule to delete.")],
) -> None:
    """
    Delete a capsule, even if it is running.

    The capsule's data volume is left on disk.
    """
    _lifecycle(ctx, identifier, "delete")
    console.print(f"[green]✓[/green] Capsule deleted: [bold]{identifier}[/bold]")


@app.command()
def doctor(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
) -> None:
    """
    Check system environment and dependencies.

    Verifies that:
    - Python is 3.11+
    - USER and HOME identify the invoking user
    - The config file, if present, parses
    - The container engine is on PATH
    - The volumes root and bootstrap directory are in place

    Example:
        $ capsules doctor
    """
    state = _state(ctx)
    checks = []

    # Check 1: Python version
    py_version = sys.version_info
    py_ok = py_version >= (3, 11)
    checks.append({
        "name": "Python version",
        "ok": py_ok,
        "value": f"{py_version.major}.{py_version.minor}.{py_version.micro}",
        "message": "OK" if py_ok else "Requires Python 3.11+",
    })

    # Check 2: Identity
    identity = None
    try:
        identity = resolve_identity()
        checks.append({
            "name": "Identity",
            "ok": True,
            "value": identity.user,
            "message": str(identity.home),
        })
    except CapsulesError as e:
        checks.append({
            "name": "Identity",
            "ok": False,
            "value": "",
            "message": e.message,
        })

    # Check 3: Config file
    config_path = _config_path(state)
    config = load_config(config_path)
    if config_path is None or not config_path.exists():
        config_ok = True
        config_message = "Not found (using defaults)"
    else:
        try:
            parse_config(config_path.read_text(encoding="utf-8"))
            config_ok = True
            config_message = "OK"
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError, ValidationError) as e:
            config_ok = False
            config_message = f"Ignored, using defaults: {e}"
    checks.append({
        "name": "Config",
        "ok": config_ok,
        "value": str(config_path) if config_path else "",
        "message": config_message,
    })

    # Check 4: Container engine
    executable = runtime_executable(config)
    engine_path = shutil.which(executable)
    checks.append({
        "name": "Container engine",
        "ok": engine_path is not None,
        "value": executable,
        "message": engine_path or "Not found on PATH",
    })

    # Check 5: Storage directories
    if identity is not None:
        volumes_root = volumes_root_path(config, identity)
        checks.append({
            "name": "Volumes root",
            "ok": True,
            "value": str(volumes_root),
            "message": "Exists" if volumes_root.is_dir() else "Not found (created on first spin)",
        })

        bootstrap_dir = bootstrap_root(identity)
        checks.append({
            "name": "Bootstrap",
            "ok": True,
            "value": str(bootstrap_dir),
            "message": "Exists" if bootstrap_dir.is_dir() else "Not found (spin with --no-init)",
        })

    all_ok = all(check["ok"] for check in checks)

    if json_output:
        output = {
            "ok": all_ok,
            "version": __version__,
            "checks": checks,
        }
        print(json.dumps(output, indent=2))
    else:
        console.print(f"[bold]Capsules Doctor[/bold] v{__version__}")
        console.print()

        for check in checks:
            icon = "[green]✓[/green]" if check["ok"] else "[red]✗[/red]"
            value = escape(check["value"])
            message = escape(check["message"])
            if check["ok"]:
                console.print(f"{icon} {check['name']}: [dim]{value}[/dim] - {message}")
            else:
                console.print(f"{icon} {check['name']}: [dim]{value}[/dim]")
                console.print(f"    [red]{message}[/red]")

        console.print()
        if all_ok:
            console.print("[green]All checks passed![/green]")
        else:
            console.print("[yellow]Some checks failed. See above for details.[/yellow]")

    raise typer.Exit(code=0 if all_ok else 1)
