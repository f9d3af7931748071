#!/usr/bin/env python3
"""CLI for the Bright Track data layer.

Commands:
    init-store        Create or reset the local store
    seed              Load demo data into an empty local store
    stats             Show record counts per collection
    students          List students on the selected dashboard
    add-student       Add a student to the selected dashboard
    delete-student    Delete a student and all of their records
    dashboards        List dashboards and show the selection
    select-dashboard  Choose the dashboard that scopes student lists
    status            Check the hosted backend once
    watch             Poll the hosted backend until interrupted
    export            Write every collection to a JSON file
    import            Load collections from a JSON export
    clear             Remove all local data
"""

import functools
import sys
import threading
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from src.backend import SupabaseClient
from src.config import AppConfig
from src.dashboard import DEFAULT_DASHBOARD_ID, DashboardContext, DashboardScopeResolver
from src.entities import DataService, create_data_service
from src.logutils import get_logger
from src.monitor import BackendProbe, ConnectivityMonitor, StatusSnapshot, unconfigured_snapshot
from src.storage import BrightTrackError, SQLiteKeyValueStore, init_store, verify_store

console = Console()
logger = get_logger(__name__)


def handle_errors(func):
    """Print Bright Track errors in red and exit non-zero instead of dumping a traceback."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except BrightTrackError as e:
            logger.debug(f"Command failed: {e}")
            console.print(f"[red]Error: {e}[/red]")
            sys.exit(1)

    return wrapper


def _dashboard_context(config: AppConfig, service: DataService) -> DashboardContext:
    context = DashboardContext(
        service.dashboards,
        kv=SQLiteKeyValueStore(config.db_path),
        default_dashboard_name=config.default_dashboard_name,
    )
    context.refresh_dashboards()
    return context


def _print_snapshot(snapshot: StatusSnapshot) -> None:
    if not snapshot.configured:
        console.print("[yellow]Supabase not configured - running on the local store[/yellow]")
        return

    style = "green" if snapshot.connected else "yellow"
    checked = snapshot.checked_at.strftime("%H:%M:%S") if snapshot.checked_at else "-"
    console.print(f"[{style}]Supabase {snapshot.status.value.title()}[/{style}] (checked {checked})")
    if snapshot.error:
        console.print(f"  [dim]{snapshot.error}[/dim]")

    if snapshot.counts:
        table = Table(show_header=True)
        table.add_column("Table", style="cyan")
        table.add_column("Rows", justify="right")
        table.add_column("Earliest")
        table.add_column("Latest")
        for name, count in snapshot.counts.items():
            bounds = (snapshot.ranges or {}).get(name, {})
            table.add_row(
                name,
                "-" if count is None else str(count),
                str(bounds.get("min") or "-"),
                str(bounds.get("max") or "-"),
            )
        console.print(table)


@click.group()
@click.version_option(version="0.1.0", prog_name="brighttrack")
@click.pass_context
def cli(ctx: click.Context):
    """Bright Track CLI - manage student behavior tracking data."""
    ctx.obj = AppConfig.from_env()


@cli.command("init-store")
@click.option("--force", is_flag=True, help="Delete an existing store first")
@click.pass_obj
@handle_errors
def init_store_cmd(config: AppConfig, force: bool):
    """Initialize or reset the local store."""
    if config.db_path.exists() and not force:
        console.print(f"[yellow]Local store already exists at {config.db_path}[/yellow]")
        console.print("Use --force to reset it.")
        return

    console.print("[blue]Initializing local store...[/blue]")
    path = init_store(config.db_path, force=force)
    info = verify_store(path)
    console.print(f"[green]✓ Local store ready at {path}[/green]")
    console.print(f"  Keys: {len(info.get('keys', []))}")


@cli.command()
@click.pass_obj
@handle_errors
def seed(config: AppConfig):
    """Load demo students, settings, summaries and incidents."""
    service = create_data_service(config)
    if not service.is_local:
        console.print("[yellow]Sample data is only loaded into the local store.[/yellow]")
        return
    if service.initialize_sample_data():
        console.print("[green]✓ Sample data loaded[/green]")
    else:
        console.print("[yellow]Students already exist; nothing seeded.[/yellow]")


@cli.command()
@click.pass_obj
@handle_errors
def stats(config: AppConfig):
    """Show record counts per collection."""
    service = create_data_service(config)
    table = Table(title=f"Records ({service.backend_name})", show_header=False)
    table.add_column("Collection", style="cyan")
    table.add_column("Records", justify="right")
    for name, count in service.get_stats().items():
        table.add_row(name, str(count))
    console.print(table)


@cli.command()
@click.option("--all", "show_all", is_flag=True, help="Include inactive students")
@click.pass_obj
@handle_errors
def students(config: AppConfig, show_all: bool):
    """List students on the selected dashboard."""
    service = create_data_service(config)
    resolver = DashboardScopeResolver.for_context(_dashboard_context(config, service))
    criteria = resolver.build_student_filter({} if show_all else {"active": True})
    rows = service.students.filter(criteria, sort="student_name")

    title = f"Students - {resolver.current_dashboard_name()}"
    if not rows:
        console.print(Panel("[yellow]No students found[/yellow]", title=title))
        return

    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Grade")
    table.add_column("Teacher")
    table.add_column("Active", justify="center")
    for s in rows:
        table.add_row(
            str(s.get("id")),
            s.get("student_name", ""),
            str(s.get("grade_level") or "-"),
            s.get("teacher_name") or "-",
            "[green]yes[/green]" if s.get("active") else "[red]no[/red]",
        )
    console.print(table)


@cli.command("add-student")
@click.argument("name")
@click.option("--grade", "-g", help="Grade level")
@click.option("--teacher", "-t", help="Teacher name")
@click.pass_obj
@handle_errors
def add_student(config: AppConfig, name: str, grade: Optional[str], teacher: Optional[str]):
    """Add a student to the selected dashboard."""
    service = create_data_service(config)
    context = _dashboard_context(config, service)
    record = context.build_student_filter({"student_name": name, "active": True})
    if grade:
        record["grade_level"] = grade
    if teacher:
        record["teacher_name"] = teacher

    created = service.students.create(record)
    console.print(f"[green]✓ Added {created['student_name']} (id {created.get('id')})[/green]")


@cli.command("delete-student")
@click.argument("student_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_obj
@handle_errors
def delete_student(config: AppConfig, student_id: str, yes: bool):
    """Delete a student together with their evaluations, incidents, contacts and summaries."""
    service = create_data_service(config)
    record_id = int(student_id) if service.backend_name == "supabase" and student_id.isdigit() else student_id
    student = service.students.get(record_id)
    if student is None:
        console.print(f"[red]Student not found: {student_id}[/red]")
        return

    if not yes and not click.confirm(f"Delete {student.get('student_name')} and all related records?", default=False):
        console.print("[yellow]Aborted.[/yellow]")
        return

    service.delete_student(record_id)
    console.print(f"[green]✓ Deleted {student.get('student_name')}[/green]")


@cli.command()
@click.pass_obj
@handle_errors
def dashboards(config: AppConfig):
    """List dashboards and show which one is selected."""
    service = create_data_service(config)
    context = _dashboard_context(config, service)
    resolver = DashboardScopeResolver.for_context(context)

    if not context.dashboards_supported:
        console.print(f"[yellow]Single-dashboard mode:[/yellow] {resolver.current_dashboard_name()}")
        return

    table = Table(title="Dashboards")
    table.add_column("", width=2)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    marker = "[green]●[/green]"
    table.add_row(
        marker if context.selected_dashboard_id == DEFAULT_DASHBOARD_ID else "",
        DEFAULT_DASHBOARD_ID,
        context.default_dashboard_name,
    )
    for d in resolver.dashboards():
        selected = str(d.get("id")) == context.selected_dashboard_id
        table.add_row(marker if selected else "", str(d.get("id")), d.get("name", ""))
    console.print(table)


@cli.command("select-dashboard")
@click.argument("dashboard_id")
@click.pass_obj
@handle_errors
def select_dashboard(config: AppConfig, dashboard_id: str):
    """Choose the dashboard that scopes student lists ("default" for the main one)."""
    service = create_data_service(config)
    context = _dashboard_context(config, service)
    selected = context.set_selected_dashboard_id(dashboard_id)
    name = DashboardScopeResolver.for_context(context).current_dashboard_name()
    if selected != dashboard_id:
        console.print(f"[yellow]Dashboard {dashboard_id} not available.[/yellow]")
    console.print(f"[green]✓ Selected {name}[/green]")


def _monitor(config: AppConfig, interval: Optional[float] = None) -> Optional[ConnectivityMonitor]:
    if not config.supabase.is_configured:
        return None
    client = SupabaseClient(config.supabase.url, config.supabase.key, timeout=config.request_timeout)
    return ConnectivityMonitor(BackendProbe(client), interval=interval or config.poll_interval)


@cli.command()
@click.pass_obj
@handle_errors
def status(config: AppConfig):
    """Check the hosted backend once."""
    console.print(Panel(f"[bold]Storage: {config.storage_mode}[/bold]  Auth: {config.auth_provider}"))
    monitor = _monitor(config)
    _print_snapshot(monitor.check() if monitor else unconfigured_snapshot())


@cli.command()
@click.option("--interval", "-i", type=float, help="Seconds between checks")
@click.option("--cycles", "-n", type=int, help="Stop after this many checks")
@click.pass_obj
@handle_errors
def watch(config: AppConfig, interval: Optional[float], cycles: Optional[int]):
    """Poll the hosted backend until interrupted."""
    monitor = _monitor(config, interval)
    if monitor is None:
        _print_snapshot(unconfigured_snapshot())
        return

    done = threading.Event()
    seen = 0

    def on_update(snapshot: StatusSnapshot) -> None:
        nonlocal seen
        seen += 1
        _print_snapshot(snapshot)
        if cycles and seen >= cycles:
            done.set()

    monitor.subscribe(on_update)
    console.print(f"[blue]Checking every {monitor.interval:g}s. Press Ctrl+C to stop.[/blue]")
    try:
        with monitor:
            done.wait()
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")


@cli.command("export")
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
@handle_errors
def export_cmd(config: AppConfig, file: Path):
    """Write every collection to a JSON file."""
    service = create_data_service(config)
    file.write_text(service.export_data(), encoding="utf-8")
    console.print(f"[green]✓ Exported to {file}[/green]")


@cli.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
@handle_errors
def import_cmd(config: AppConfig, file: Path):
    """Load collections from a JSON export."""
    service = create_data_service(config)
    if service.import_data(file.read_text(encoding="utf-8")):
        console.print(f"[green]✓ Imported {file}[/green]")
    else:
        console.print(f"[red]Import failed: {file} is not a valid export[/red]")
        sys.exit(1)


@cli.command()
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_obj
@handle_errors
def clear(config: AppConfig, yes: bool):
    """Remove all local data."""
    service = create_data_service(config)
    if not yes and not click.confirm("Remove all local Bright Track data?", default=False):
        console.print("[yellow]Aborted.[/yellow]")
        return
    service.clear_all_data()
    console.print("[green]✓ Local data cleared[/green]")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
