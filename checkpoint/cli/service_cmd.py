"""Service management commands for the checkpoint CLI."""

from pathlib import Path

import click
from pydantic import ValidationError

from checkpoint.cli.output import console, error, info, success, warning
from checkpoint.exceptions import CheckpointError
from checkpoint.models.service import ServiceDescriptor, ServiceStatus, ServiceType
from checkpoint.service.manager import DaemonManager
from checkpoint.services.settings import SettingsService

PAST_TENSE = {"start": "Started", "stop": "Stopped", "restart": "Restarted"}

STATUS_STYLES = {
    ServiceStatus.RUNNING: "green",
    ServiceStatus.SCHEDULED: "cyan",
    ServiceStatus.STOPPED: "red",
}


def _get_manager(ctx: click.Context) -> DaemonManager:
    """Return the manager stored on the context, building it on first use."""
    obj = ctx.ensure_object(dict)
    manager = obj.get("manager")
    if manager is None:
        settings = SettingsService().load()
        manager = DaemonManager(settings=settings)
        obj["manager"] = manager
    return manager


def _toggle(ctx: click.Context, action: str, name: str) -> None:
    manager = _get_manager(ctx)
    try:
        ok = getattr(manager, action)(name)
    except CheckpointError as e:
        error(str(e))
        raise SystemExit(1) from e

    if ok:
        success(f"{PAST_TENSE[action]} {name}")
    else:
        error(f"Failed to {action} {name} (run with --debug for details)")
        raise SystemExit(1)


@click.group()
def service() -> None:
    """Manage Checkpoint background services."""
    pass


@service.command()
@click.argument("name")
@click.option(
    "--script",
    "-s",
    "script_path",
    required=True,
    type=click.Path(path_type=Path),
    help="Executable the service runs",
)
@click.option(
    "--project-dir",
    "-d",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Working directory of the service",
)
@click.option("--project-name", "-n", help="Project name (default: directory name)")
@click.option(
    "--type",
    "-t",
    "service_type",
    type=click.Choice([t.value for t in ServiceType]),
    default=ServiceType.DAEMON.value,
    show_default=True,
    help="Scheduling shape",
)
@click.pass_context
def install(
    ctx: click.Context,
    name: str,
    script_path: Path,
    project_dir: Path,
    project_name: str | None,
    service_type: str,
) -> None:
    """Install (or reinstall) a service and activate it."""
    try:
        descriptor = ServiceDescriptor(
            service_name=name,
            script_path=script_path.expanduser().absolute(),
            project_dir=project_dir.expanduser().absolute(),
            project_name=project_name or project_dir.expanduser().absolute().name,
            service_type=ServiceType(service_type),
        )
    except ValidationError as e:
        error(f"Invalid service definition: {e.errors()[0]['msg']}")
        raise SystemExit(1) from e

    manager = _get_manager(ctx)
    try:
        ok = manager.install(descriptor)
    except CheckpointError as e:
        error(str(e))
        raise SystemExit(1) from e

    if ok:
        success(f"Installed {name} ({manager.backend.value})")
    else:
        error(f"Installed {name} but could not activate it (run with --debug for details)")
        raise SystemExit(1)


@service.command()
@click.argument("name")
@click.pass_context
def uninstall(ctx: click.Context, name: str) -> None:
    """Remove a service, including artifacts from older versions."""
    manager = _get_manager(ctx)
    try:
        ok = manager.uninstall(name)
    except CheckpointError as e:
        error(str(e))
        raise SystemExit(1) from e

    if ok:
        success(f"Uninstalled {name}")
    else:
        error(f"Failed to uninstall {name}")
        raise SystemExit(1)


@service.command()
@click.argument("name")
@click.pass_context
def start(ctx: click.Context, name: str) -> None:
    """Start an installed service."""
    _toggle(ctx, "start", name)


@service.command()
@click.argument("name")
@click.pass_context
def stop(ctx: click.Context, name: str) -> None:
    """Stop an installed service."""
    _toggle(ctx, "stop", name)


@service.command()
@click.argument("name")
@click.pass_context
def restart(ctx: click.Context, name: str) -> None:
    """Restart an installed service."""
    _toggle(ctx, "restart", name)


@service.command()
@click.argument("name")
@click.pass_context
def status(ctx: click.Context, name: str) -> None:
    """Show whether a service is running."""
    manager = _get_manager(ctx)
    try:
        state = manager.status(name)
    except CheckpointError as e:
        error(str(e))
        raise SystemExit(1) from e

    style = STATUS_STYLES[state]
    console.print(f"{name}: [{style}]{state.value}[/{style}] ({manager.backend.value})")
    if state is ServiceStatus.STOPPED and not manager.is_installed(name):
        info("  Not installed")


@service.command(name="list")
@click.argument("pattern", default="checkpoint")
@click.pass_context
def list_services(ctx: click.Context, pattern: str) -> None:
    """Print raw backend listing lines matching PATTERN."""
    manager = _get_manager(ctx)
    for line in manager.list(pattern):
        click.echo(line)


@service.command()
@click.pass_context
def names(ctx: click.Context) -> None:
    """Print the name of every service the backend lists."""
    manager = _get_manager(ctx)
    for name in manager.service_names():
        click.echo(name)


@service.command()
@click.pass_context
def pause(ctx: click.Context) -> None:
    """Stop every installed service."""
    results = _get_manager(ctx).stop_all()
    _report_bulk(results, "Paused")


@service.command()
@click.pass_context
def resume(ctx: click.Context) -> None:
    """Start every installed service."""
    results = _get_manager(ctx).start_all()
    _report_bulk(results, "Resumed")


@service.command()
@click.pass_context
def backend(ctx: click.Context) -> None:
    """Print the detected service backend."""
    click.echo(_get_manager(ctx).backend.value)


def _report_bulk(results: dict[str, bool], verb: str) -> None:
    if not results:
        info("No services installed")
        return

    failed = [name for name, ok in results.items() if not ok]
    for name in failed:
        warning(f"Could not change {name}")
    success(f"{verb} {len(results) - len(failed)} of {len(results)} service(s)")
    if failed:
        raise SystemExit(1)
