import asyncio
import time
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from frick.engine import BlockingSessionEngine
from frick.errors import (
    FrickError,
    ProfileError,
    ScanFailed,
    ShieldApplyFailed,
    TransitionInProgress,
    Unauthorized,
    WriteFailed,
    WrongTag,
)
from frick.schema import AuthorizationState, Profile
from frick.settings import settings
from frick.shield import ProcessShield
from frick.store import KeyValueStore
from frick.tags import FileTag
from frick.utils.banner import render_banner
from frick.utils.logging import setup_logging
from frick.utils.notifications import send_notification
from frick.utils.time import format_time, goal_progress

app = typer.Typer(help="Frick - tag-gated app blocking")
profile_app = typer.Typer(help="Manage blocking profiles")
app.add_typer(profile_app, name="profile")
console = Console()


def build_engine(notify: bool = True) -> BlockingSessionEngine:
    """Creates an engine over the persisted state in settings.data_dir."""
    store = KeyValueStore(settings.state_file)
    return BlockingSessionEngine(store, ProcessShield(notify=notify))


def process_names_list(values: list[str] | None) -> list[str]:
    """Processes a list of strings potentially containing commas into a clean list of names."""
    if not values:
        return []
    processed = []
    for v in values:
        parts = [x.strip() for x in v.split(",") if x.strip()]
        processed.extend(parts)
    return processed


def ordered_profiles(engine: BlockingSessionEngine) -> list[Profile]:
    """Profiles as listed: the current one first, then the rest in creation order."""
    current = engine.profiles.current()
    return [current] + [p for p in engine.profiles.profiles if p.id != current.id]


def resolve_profile(engine: BlockingSessionEngine, index: int) -> Profile:
    profiles = ordered_profiles(engine)
    if index < 1 or index > len(profiles):
        console.print(f"[red]Error:[/red] Index {index} is out of range.")
        raise typer.Exit(1)
    return profiles[index - 1]


def describe_targets(profile: Profile) -> str:
    parts = []
    if profile.blocked_apps:
        parts.append(", ".join(sorted(profile.blocked_apps)))
    if profile.blocked_categories:
        parts.append("categories: " + ", ".join(sorted(profile.blocked_categories)))
    return "; ".join(parts) if parts else "[dim]nothing[/dim]"


def report_shield_failure(e: ShieldApplyFailed) -> None:
    state = "BLOCKING" if e.blocking else "NOT BLOCKING"
    console.print(f"[bold red]✖ {e}[/bold red] State is recorded as {state}.")
    console.print("[dim]Run `frick retry` to apply it again.[/dim]")
    send_notification("Frick", str(e))


@app.command()
def status(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Show blocking state, active profile and time blocked today."""
    setup_logging(verbose=verbose)
    engine = build_engine()
    snapshot = engine.status()

    console.print(render_banner(snapshot.is_blocking))

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Profile", f"{snapshot.profile.icon} {snapshot.profile.name.upper()}")
    table.add_row("Targets", describe_targets(snapshot.profile))
    if snapshot.is_blocking:
        table.add_row("Session", format_time(snapshot.elapsed_session))
        table.add_row("Since", snapshot.session_start_time.strftime("%H:%M:%S"))

    progress = goal_progress(snapshot.today_total, settings.daily_goal_hours)
    table.add_row(
        "Today",
        f"{format_time(snapshot.today_total)} "
        f"({progress:.0%} of {settings.daily_goal_hours:g}H goal)",
    )
    console.print(table)


@app.command()
def scan(
    tag: Path | None = typer.Option(None, "--tag", "-t", help="Path of the tag file"),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Seconds to wait for the tag"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Wait for the tag and toggle blocking."""
    setup_logging(verbose=verbose)
    engine = build_engine()
    reader = FileTag(tag, timeout=timeout)

    async def run() -> bool:
        await engine.authorize()
        console.print(f"Hold your tag near the reader... [dim]({reader.path})[/dim]")
        return await engine.scan(reader)

    try:
        blocking = asyncio.run(run())
    except WrongTag as e:
        console.print(f"[bold yellow]Wrong tag![/bold yellow] {e}")
        send_notification("Wrong Tag", str(e))
        raise typer.Exit(1)
    except Unauthorized as e:
        console.print(f"[bold red]Not authorized:[/bold red] {e}")
        raise typer.Exit(1)
    except ScanFailed as e:
        console.print(f"[red]Scan failed:[/red] {e}")
        raise typer.Exit(1)
    except ShieldApplyFailed as e:
        report_shield_failure(e)
        raise typer.Exit(1)
    except TransitionInProgress as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(1)

    profile = engine.current_profile()
    if blocking:
        console.print(
            f"[bold red]Blocking started[/bold red] with {profile.icon} {profile.name}"
        )
    else:
        console.print(
            f"[bold green]Blocking stopped.[/bold green] "
            f"Today: {format_time(engine.today_total())}"
        )


@app.command()
def authorize(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Check that frick is allowed to block apps."""
    setup_logging(verbose=verbose)
    engine = build_engine()
    state = asyncio.run(engine.authorize())
    if state is AuthorizationState.GRANTED:
        console.print("[bold green]✔ Blocking permission granted.[/bold green]")
    else:
        console.print(f"[bold red]✖ {engine.gate.reason}[/bold red]")
        raise typer.Exit(1)


@app.command(name="write-tag")
def write_tag(
    tag: Path | None = typer.Argument(None, help="Where to write the tag file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Program a tag with the Frick phrase."""
    setup_logging(verbose=verbose)
    engine = build_engine()
    writer = FileTag(tag)
    try:
        asyncio.run(engine.write_tag(writer))
    except WriteFailed as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]Tag created successfully![/green] [dim]({writer.path})[/dim]")


@app.command()
def retry(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Apply the shield again for the current state."""
    setup_logging(verbose=verbose)
    engine = build_engine()
    try:
        engine.retry_shield()
    except ShieldApplyFailed as e:
        report_shield_failure(e)
        raise typer.Exit(1)
    console.print("[green]Shield applied.[/green]")


@app.command()
def daemon(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Keep closing blocked apps while blocking is on."""
    setup_logging(verbose=verbose)
    console.print("[bold green]Frick daemon started...[/bold green]")
    console.print(f"Data directory: [cyan]{settings.data_dir}[/cyan]")
    console.print("Press Ctrl+C to stop.")

    try:
        while True:
            # Rebuild each cycle so changes made by other commands are picked up
            engine = build_engine()
            if engine.is_blocking:
                try:
                    engine.retry_shield()
                except ShieldApplyFailed as e:
                    logger.error(f"Enforcement failed: {e.cause}")
            time.sleep(settings.enforce_interval_seconds)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping daemon...[/yellow]")


@app.command()
def history(
    days: int = typer.Option(7, "--days", "-d", help="Number of days to show"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Show time blocked per day."""
    setup_logging(verbose=verbose)
    engine = build_engine()
    entries = engine.ledger.history(days)
    if not entries:
        console.print("[yellow]No blocked time recorded yet.[/yellow]")
        return

    table = Table(title="Time Blocked")
    table.add_column("Day", style="cyan")
    table.add_column("Blocked", style="magenta", justify="right")
    table.add_column("Goal", style="green", justify="right")
    for key, seconds in entries:
        progress = goal_progress(seconds, settings.daily_goal_hours)
        table.add_row(key, format_time(seconds), f"{progress:.0%}")
    console.print(table)


@profile_app.command(name="list")
def list_profiles(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """List profiles. The current one comes first, marked with *."""
    setup_logging(verbose=verbose)
    engine = build_engine()

    table = Table(title="Profiles")
    table.add_column("#", justify="right", style="cyan", no_wrap=True)
    table.add_column("", no_wrap=True)
    table.add_column("Name", style="magenta")
    table.add_column("Blocks", style="white")

    for i, profile in enumerate(ordered_profiles(engine), 1):
        marker = "*" if i == 1 else ""
        table.add_row(
            f"{marker}{i}", profile.icon, profile.name, describe_targets(profile)
        )
    console.print(table)


@profile_app.command(name="add")
def add_profile(
    name: str = typer.Argument(..., help="Profile name"),
    icon: str | None = typer.Option(None, "--icon", "-i", help="Display glyph"),
    apps: list[str] | None = typer.Option(
        None, "--apps", "-a", help="Apps to block (comma separated process names)"
    ),
    categories: list[str] | None = typer.Option(
        None, "--categories", "-c", help="Categories to block (comma separated)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Create a new profile."""
    setup_logging(verbose=verbose)
    engine = build_engine()
    try:
        profile = engine.add_profile(
            name, icon, process_names_list(apps), process_names_list(categories)
        )
    except FrickError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]Added profile:[/green] {profile.icon} {profile.name}")


@profile_app.command(name="edit")
def edit_profile(
    index: int = typer.Argument(..., help="Index of the profile (from frick profile list)"),
    name: str | None = typer.Option(None, "--name", "-n", help="New name"),
    icon: str | None = typer.Option(None, "--icon", "-i", help="New display glyph"),
    apps: list[str] | None = typer.Option(
        None, "--apps", "-a", help="Replace blocked apps (comma separated)"
    ),
    categories: list[str] | None = typer.Option(
        None, "--categories", "-c", help="Replace blocked categories (comma separated)"
    ),
    clear: bool = typer.Option(
        False, "--clear", help="Remove all blocked apps and categories first"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Edit a profile's name, icon or targets."""
    setup_logging(verbose=verbose)
    engine = build_engine()
    target = resolve_profile(engine, index)
    new_apps = process_names_list(apps) if apps or clear else None
    new_categories = process_names_list(categories) if categories or clear else None
    try:
        profile = engine.update_profile(
            target.id,
            name=name,
            blocked_apps=new_apps,
            blocked_categories=new_categories,
            icon=icon,
        )
    except ShieldApplyFailed as e:
        report_shield_failure(e)
        raise typer.Exit(1)
    except FrickError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]Updated profile:[/green] {profile.icon} {profile.name}")


@profile_app.command(name="remove")
def remove_profile(
    index: int = typer.Argument(..., help="Index of the profile (from frick profile list)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Delete a profile. The last profile cannot be deleted."""
    setup_logging(verbose=verbose)
    engine = build_engine()
    target = resolve_profile(engine, index)
    try:
        engine.delete_profile(target.id)
    except ShieldApplyFailed as e:
        report_shield_failure(e)
        raise typer.Exit(1)
    except ProfileError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    current = engine.current_profile()
    console.print(
        f"[green]Removed profile:[/green] {target.name}. "
        f"Current profile: {current.icon} {current.name}"
    )


@profile_app.command(name="use")
def use_profile(
    index: int = typer.Argument(..., help="Index of the profile (from frick profile list)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Switch the current profile. Takes effect immediately while blocking."""
    setup_logging(verbose=verbose)
    engine = build_engine()
    target = resolve_profile(engine, index)
    try:
        profile = engine.select_profile(target.id)
    except ShieldApplyFailed as e:
        report_shield_failure(e)
        raise typer.Exit(1)
    console.print(f"[green]Current profile:[/green] {profile.icon} {profile.name}")


if __name__ == "__main__":
    app()
