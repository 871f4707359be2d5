"""Typer CLI: write, rotate, status, init commands."""

from __future__ import annotations

import logging
import zipfile
from datetime import datetime
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from rotalog import __version__
from rotalog.config import LoggerSettings

app = typer.Typer(
    name="rotalog",
    help="Self-rotating append-only log writer.",
    no_args_is_help=True,
)
console = Console()

ROTATION_ERRORS = (OSError, zipfile.BadZipFile)

LEVEL_STYLES = {
    "error": "red bold",
    "warning": "yellow",
    "info": "cyan",
    "debug": "dim",
    "verbose": "dim",
}


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"rotalog v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version.", callback=_version_callback, is_eager=True
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Diagnostics level for rotalog itself"),
) -> None:
    """rotalog - self-rotating append-only log writer."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_settings(project_dir: Path, overrides: dict) -> LoggerSettings:
    from rotalog.config import load_config, settings_from_config, validate_config
    from rotalog.threshold import parse_threshold

    config = load_config(project_dir)
    config.update({k: v for k, v in overrides.items() if v is not None})

    errors = validate_config(config)
    if errors:
        for e in errors:
            console.print(f"[red]Config error: {escape(e)}[/red]")
        raise typer.Exit(1)

    if config.get("rotate") and not parse_threshold(config["rotate"]).enabled:
        console.print(
            f"[yellow]Rotation spec '{escape(config['rotate'])}' not recognised; "
            f"rotation is disabled.[/yellow]"
        )
    return settings_from_config(config, project_dir)


@app.command()
def write(
    message: str = typer.Argument(..., help="Message to append"),
    level: str = typer.Option("Info", "--level", "-l", help="Level tag for the line"),
    name: str = typer.Option(None, "--name", "-n", help="Log name (file is <name>.log)"),
    log_dir: Path = typer.Option(None, "--log-dir", help="Directory holding the log"),
    rotate: str = typer.Option(None, "--rotate", help="Threshold: 10M, 512K, 1G or days"),
    keep: int = typer.Option(None, "--keep", help="Rotated files to retain"),
    no_archive: bool = typer.Option(False, "--no-archive", help="Keep rotated files loose on disk"),
    attempts: int = typer.Option(None, "--attempts", help="Write attempts before giving up"),
    backoff_ms: int = typer.Option(None, "--backoff-ms", help="Delay between attempts"),
    encoding: str = typer.Option(None, "--encoding", help="Text encoding of the log file"),
    raw: bool = typer.Option(False, "--raw", help="Write the message without timestamp and level"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Do not echo to the console"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Append a message to the log, rotating it first if due."""
    from rotalog.session import write_log
    from rotalog.writer import format_line

    settings = _load_settings(project_dir, {
        "name": name,
        "directory": str(log_dir) if log_dir else None,
        "rotate": rotate,
        "keep": keep,
        "archive": False if no_archive else None,
        "attempts": attempts,
        "backoff_ms": backoff_ms,
        "encoding": encoding,
        "raw": True if raw else None,
    })

    if not quiet:
        style = LEVEL_STYLES.get(level.lower(), "")
        line = escape(format_line(message, level, settings.timestamp_format, raw=settings.raw))
        console.print(f"[{style}]{line}[/{style}]" if style else line)

    try:
        result = write_log(message, settings, level=level)
    except ROTATION_ERRORS as exc:
        console.print(f"[red]Rotation failed, message not written: {escape(str(exc))}[/red]")
        raise typer.Exit(2)

    if not result.ok:
        console.print(
            f"[red]Write failed after {result.attempts} attempt(s): {escape(result.error)}[/red]"
        )
        raise typer.Exit(1)


@app.command()
def rotate(
    force: bool = typer.Option(False, "--force", help="Rotate even if under the threshold"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Run the rotation check for the configured log."""
    from rotalog.session import prepare_log, rotate_now

    settings = _load_settings(project_dir, {})
    if not settings.base_path.exists():
        console.print(f"  [dim]No log at {settings.base_path}[/dim]")
        return

    try:
        rotated = rotate_now(settings) if force else prepare_log(settings)
    except ROTATION_ERRORS as exc:
        console.print(f"[red]Rotation failed: {escape(str(exc))}[/red]")
        raise typer.Exit(2)

    if rotated:
        console.print(f"  [green]Rotated[/green] {settings.base_path}")
    else:
        console.print("  [dim]Nothing to rotate[/dim]")


@app.command()
def status(
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Show the configured log, its threshold and its rotated files."""
    from rotalog.archive import archive_ref, list_archive
    from rotalog.log_rotation import list_numbered_logs
    from rotalog.threshold import creation_time, describe_threshold

    console.print(Panel("[bold]rotalog Status[/bold]", style="blue"))
    settings = _load_settings(project_dir, {})
    base = settings.base_path

    console.print(f"  Log: [cyan]{base}[/cyan]")
    if base.exists():
        age = datetime.now() - creation_time(base)
        console.print(f"  Size: {base.stat().st_size} bytes, age: {age.days} day(s)")
    else:
        console.print("  Size: [dim]not created yet[/dim]")
    console.print(f"  Threshold: {describe_threshold(settings.threshold)}")
    console.print(f"  Retention: {settings.retention.max_count} file(s)")

    table = Table(title="Rotated logs")
    table.add_column("File")
    table.add_column("Location")
    for ref in list_numbered_logs(settings.directory, settings.name):
        table.add_row(ref.path.name, "disk")
    ref = archive_ref(settings.directory, settings.name)
    try:
        members = list_archive(settings.directory, settings.name)
    except ROTATION_ERRORS as exc:
        console.print(f"  Archive: [red]unreadable ({escape(str(exc))})[/red]")
        members = []
    for member in members:
        table.add_row(member, ref.path.name)

    if table.row_count:
        console.print(table)
    else:
        console.print("  Rotated: [dim]none[/dim]")


@app.command()
def init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
    project_dir: Path = typer.Option(Path.cwd(), "--dir", help="Project directory"),
) -> None:
    """Write a default .rotalog/config.json."""
    from rotalog.config import DEFAULT_CONFIG, get_config_path, load_config, save_config

    existing = get_config_path(project_dir)
    if existing.exists() and existing.parent.parent == project_dir and not force:
        config = load_config(project_dir)
        console.print("  [yellow]Merged with existing config[/yellow]")
    else:
        config = DEFAULT_CONFIG.copy()
        console.print("  [green]Created default config[/green]")

    config_path = save_config(config, project_dir)
    console.print(f"  Config: [cyan]{config_path}[/cyan]")
