#!/usr/bin/env python3
"""
Command-line interface for the VRChat session parser.
"""

import csv
import json
import logging
from pathlib import Path
from datetime import datetime

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from .config.loader import load_and_apply_config
from .errors import VRCSessionsError
from .parser.parser import VRChatLogParser
from .segmentation.correlator import PhotoSessionCorrelator
from .segmentation.players import annotate_players
from .segmentation.sessions import SessionSegmenter
from .sources import find_log_files, find_photo_files, merge_events


# Set up rich consoles: results on stdout, log records on stderr
console = Console()
log_console = Console(stderr=True)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(console=log_console, rich_tracebacks=True)],
)
logger = logging.getLogger(__name__)


class AppContext:
    """Settings and pattern registry shared by every command."""

    def __init__(self, settings, registry):
        self.settings = settings
        self.registry = registry


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--config", "config_path", type=click.Path(), default=None, help="YAML config file")
@click.pass_context
def cli(ctx, verbose, config_path):
    """VRChat Session Parser - group VRChat photos by the world they were taken in"""
    try:
        settings, registry = load_and_apply_config(config_path)
    except VRCSessionsError as e:
        raise click.ClickException(str(e))

    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)
    settings.log_configuration()

    ctx.obj = AppContext(settings, registry)


def _resolve_log_files(app, log_files):
    if log_files:
        return [Path(f) for f in log_files]
    try:
        files = find_log_files(app.settings.log_dir)
    except FileNotFoundError as e:
        raise click.ClickException(str(e))
    if not files:
        raise click.ClickException(f"No output_log_*.txt files in {app.settings.log_dir}")
    return files


def _read_events(app, log_files, since=None):
    """Parse every log file and merge their events in time order."""
    since = since or app.settings.since
    streams = []
    parse_errors = []

    for log_path in log_files:
        parser = VRChatLogParser(app.registry, since=since, use_prefilter=app.settings.use_prefilter)
        stream = []
        for result in parser.parse_file(log_path):
            if result.is_error:
                parse_errors.append((log_path.name, result))
            else:
                stream.append(result)
        streams.append(stream)

    return merge_events(streams), parse_errors


def _format_time(timestamp):
    return timestamp.value.strftime("%Y-%m-%d %H:%M:%S") if timestamp else "-"


def _format_duration(seconds):
    if seconds is None:
        return "open"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


@cli.command()
@click.argument("log_files", nargs=-1, type=click.Path(exists=True))
@click.option("--since", default=None, help="Ignore events before this timestamp")
@click.option("--errors/--no-errors", default=True, help="Show malformed lines")
@click.pass_obj
def events(app, log_files, since, errors):
    """Dump classified events from VRChat log files."""
    log_paths = _resolve_log_files(app, log_files)
    try:
        merged, parse_errors = _read_events(app, log_paths, since)
    except VRCSessionsError as e:
        raise click.ClickException(str(e))

    table = Table(title=f"Events ({len(merged)})")
    table.add_column("Time", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Details")

    for event in merged:
        details = {k: v for k, v in event.to_dict().items() if k not in ("kind", "at") and v}
        table.add_row(
            _format_time(event.at),
            event.kind.value,
            escape(", ".join(f"{k}={v}" for k, v in details.items())),
        )
    console.print(table)

    if errors and parse_errors:
        console.print(f"\n[yellow]Malformed lines ({len(parse_errors)}):[/yellow]")
        for file_name, error in parse_errors[:20]:
            console.print(f"  [red]{escape(file_name)}[/red] {escape(str(error))}")
        if len(parse_errors) > 20:
            console.print(f"  [dim]... and {len(parse_errors) - 20} more[/dim]")


@cli.command()
@click.argument("log_files", nargs=-1, type=click.Path(exists=True))
@click.option("--output", "-o", help="Output file for results")
@click.option("--format", type=click.Choice(["json", "csv", "summary"]), default="summary")
@click.option("--players", is_flag=True, help="List players seen in each session")
@click.pass_obj
def sessions(app, log_files, output, format, players):
    """Reconstruct world sessions from VRChat log files."""
    log_paths = _resolve_log_files(app, log_files)
    start_time = datetime.now()

    try:
        merged, parse_errors = _read_events(app, log_paths)
    except VRCSessionsError as e:
        raise click.ClickException(str(e))

    segmenter = SessionSegmenter()
    world_sessions = segmenter.reconstruct(merged)
    presence = annotate_players(world_sessions, merged) if players or format == "json" else {}
    processing_time = (datetime.now() - start_time).total_seconds()

    if format == "summary":
        display_sessions(world_sessions, presence, segmenter.get_stats(), len(parse_errors), processing_time)
    elif format == "json":
        data = []
        for session in world_sessions:
            entry = session.to_dict()
            entry["players"] = [p.to_dict() for p in presence.get(session, [])]
            data.append(entry)
        write_json(data, output)
    elif format == "csv":
        export_sessions_csv(world_sessions, output)


def display_sessions(world_sessions, presence, stats, error_count, processing_time):
    """Display reconstructed sessions."""
    stats_table = Table(title="Parsing Statistics", show_header=False)
    stats_table.add_column("Metric", style="cyan")
    stats_table.add_column("Value", style="white")
    stats_table.add_row("Sessions", str(stats["total_sessions"]))
    stats_table.add_row("Application Exits", str(stats["application_quits"]))
    stats_table.add_row("Zero Duration", str(stats["zero_duration"]))
    stats_table.add_row("Unnamed Worlds", str(stats["unnamed_worlds"]))
    stats_table.add_row("Parse Errors", str(error_count))
    stats_table.add_row("Processing Time", f"{processing_time:.2f}s")
    console.print(stats_table)

    if not world_sessions:
        console.print("[yellow]No world joins found[/yellow]")
        return

    table = Table(title=f"\n[bold]World Sessions ({len(world_sessions)})[/bold]")
    table.add_column("#", style="dim", width=4)
    table.add_column("World", width=30)
    table.add_column("Instance", style="dim")
    table.add_column("Joined", style="cyan")
    table.add_column("Duration", style="green")
    if presence:
        table.add_column("Players", justify="right")

    for i, session in enumerate(world_sessions, 1):
        row = [
            str(i),
            escape(session.world_name or session.world_id),
            escape(session.instance_id.split("~")[0]),
            _format_time(session.joined_at),
            _format_duration(session.duration),
        ]
        if presence:
            row.append(str(len({p.player_id or p.player_name for p in presence.get(session, [])})))
        table.add_row(*row)

    console.print(table)


@cli.command()
@click.argument("log_files", nargs=-1, type=click.Path(exists=True))
@click.option("--photos", "photo_paths", multiple=True, help="Photo file (repeatable)")
@click.option("--photo-dir", type=click.Path(file_okay=False), default=None, help="Directory to scan for photos")
@click.option("--output", "-o", help="Output file for results")
@click.option("--format", type=click.Choice(["json", "csv", "summary"]), default="summary")
@click.option("--oldest-first", is_flag=True, help="List the oldest session first")
@click.pass_obj
def group(app, log_files, photo_paths, photo_dir, output, format, oldest_first):
    """Group VRChat photos by the world session they were taken in."""
    log_paths = _resolve_log_files(app, log_files)

    if photo_paths:
        candidates = list(photo_paths)
    else:
        try:
            candidates = find_photo_files(photo_dir or app.settings.photo_dir)
        except FileNotFoundError as e:
            raise click.ClickException(str(e))

    try:
        merged, parse_errors = _read_events(app, log_paths)
    except VRCSessionsError as e:
        raise click.ClickException(str(e))

    world_sessions = SessionSegmenter().reconstruct(merged)
    records, rejected = PhotoSessionCorrelator.parse_photos(candidates)

    newest_first = app.settings.newest_first and not oldest_first
    correlator = PhotoSessionCorrelator(newest_first=newest_first)
    groups = correlator.correlate(world_sessions, records)

    if format == "summary":
        display_groups(groups, correlator.get_stats(), len(rejected), len(parse_errors))
    elif format == "json":
        write_json([g.to_dict() for g in groups], output)
    elif format == "csv":
        export_groups_csv(groups, output)


def display_groups(groups, stats, rejected_count, error_count):
    """Display grouped photos as a tree."""
    tree = Tree("[bold cyan]Photos by World Session[/bold cyan]")

    for photo_group in groups:
        if photo_group.is_residual:
            label = f"[yellow]Before any known session[/yellow] ({len(photo_group)} photos)"
        else:
            session = photo_group.session
            label = (
                f"[bold]{escape(session.world_name or session.world_id)}[/bold] "
                f"[cyan]{_format_time(session.joined_at)}[/cyan] "
                f"[dim]{_format_duration(session.duration)}[/dim] ({len(photo_group)} photos)"
            )
        branch = tree.add(label)
        for photo in photo_group.photos:
            width, height = photo.resolution
            branch.add(f"{escape(Path(photo.path).name)} [dim]{width}x{height}[/dim]")

    console.print(tree)
    console.print(
        f"\n[green]{stats['photos_grouped']}[/green] photos in sessions, "
        f"[yellow]{stats['photos_residual']}[/yellow] before any session, "
        f"[red]{rejected_count}[/red] skipped files, "
        f"[red]{error_count}[/red] malformed log lines"
    )


def write_json(data, output_file=None):
    """Write JSON to a file, or to stdout when no file is given."""
    text = json.dumps(data, indent=2, default=str)
    if output_file is None:
        click.echo(text)
        return
    with open(output_file, "w", encoding="utf-8") as f:
        f.write(text)
    console.print(f"[green]Exported {len(data)} records to {output_file}[/green]")


def export_sessions_csv(world_sessions, output_file):
    """Export sessions to CSV format."""
    output_file = output_file or "sessions.csv"
    with open(output_file, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["World ID", "World Name", "Instance ID", "Joined", "Left", "Duration", "Leave Reason"])
        for session in world_sessions:
            writer.writerow(
                [
                    session.world_id,
                    session.world_name,
                    session.instance_id,
                    session.joined_at.isoformat(),
                    session.left_at.isoformat() if session.left_at else "",
                    f"{session.duration:.1f}" if session.duration is not None else "",
                    session.leave_reason.value if session.leave_reason else "",
                ]
            )

    console.print(f"[green]Exported {len(world_sessions)} sessions to {output_file}[/green]")


def export_groups_csv(groups, output_file):
    """Export grouped photos to CSV format, one row per photo."""
    output_file = output_file or "photos.csv"
    rows = 0
    with open(output_file, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["Photo", "Captured", "Width", "Height", "World ID", "World Name", "Instance ID", "Joined"])
        for photo_group in groups:
            session = photo_group.session
            for photo in photo_group.photos:
                width, height = photo.resolution
                writer.writerow(
                    [
                        photo.path,
                        photo.captured_at.isoformat(),
                        width,
                        height,
                        session.world_id if session else "",
                        session.world_name if session else "",
                        session.instance_id if session else "",
                        session.joined_at.isoformat() if session else "",
                    ]
                )
                rows += 1

    console.print(f"[green]Exported {rows} photos to {output_file}[/green]")


def main():
    """Entry point for the vrcsessions command."""
    cli()


if __name__ == "__main__":
    main()
