"""Command line interface for bitrot."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from bitrot.compare import classify
from bitrot.config import AppConfig
from bitrot.report import EXIT_ERROR, exit_code, render
from bitrot.scanner import ScanError, generate_snapshot
from bitrot.storage import SQLiteSnapshotStore, StorageError
from bitrot.web.app import app as web_app

LOGGER = logging.getLogger(__name__)

console = Console()
app = typer.Typer(help="bitrot - detect silent data corruption in directory trees")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _resolve_db(db: Optional[Path]) -> Path:
    config = AppConfig(db_path=db)
    return config.resolve_db_path(Path.cwd())


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(code=EXIT_ERROR)


@app.command()
def check(
    path: Path = typer.Argument(..., help="Directory to check.", resolve_path=True),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    as_json: bool = typer.Option(False, "--json", help="Print the comparison as JSON"),
    save: bool = typer.Option(True, "--save/--no-save", help="Store the new snapshot"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Scan a directory and compare it with its previous snapshot."""
    _setup_logging(verbose)
    config = AppConfig(db_path=db)
    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)

    try:
        new_snapshot = generate_snapshot(path, config)
    except ScanError as exc:
        _fail(str(exc))

    try:
        store = SQLiteSnapshotStore(resolved_db)
    except StorageError as exc:
        _fail(str(exc))

    try:
        previous = store.latest(new_snapshot.path)
        if save:
            store.save(new_snapshot)
    except StorageError as exc:
        _fail(str(exc))
    finally:
        store.close()

    if previous is None:
        if as_json:
            typer.echo(json.dumps({"previous_snapshot": None, "comparison": None}, indent=2))
        else:
            console.print(
                f"No previous snapshot of [bold]{new_snapshot.path}[/bold]; "
                f"recorded {len(new_snapshot)} files."
            )
        return

    comparison = classify(previous, new_snapshot)
    if comparison.ambiguous_checksums:
        LOGGER.warning(
            "%d checksum(s) are shared by several added or deleted files; renames were paired by name",
            len(comparison.ambiguous_checksums),
        )
    LOGGER.info(
        "Checked %d paths against snapshot from %s",
        comparison.total_checked(),
        previous.created_at.isoformat(),
    )

    if as_json:
        payload = {
            "previous_snapshot": previous.created_at.isoformat(),
            "comparison": comparison.to_dict(),
        }
        typer.echo(json.dumps(payload, indent=2))
    else:
        render(console, comparison, verbose=verbose)

    raise typer.Exit(code=exit_code(comparison))


@app.command()
def snapshot(
    path: Path = typer.Argument(..., help="Directory to scan.", resolve_path=True),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Record a snapshot without comparing it."""
    _setup_logging(verbose)
    config = AppConfig(db_path=db)
    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)

    try:
        new_snapshot = generate_snapshot(path, config)
        with SQLiteSnapshotStore(resolved_db) as store:
            snapshot_id = store.save(new_snapshot)
    except (ScanError, StorageError) as exc:
        _fail(str(exc))

    console.print(f"Saved snapshot {snapshot_id} with {len(new_snapshot)} files.")


@app.command()
def history(
    path: Optional[Path] = typer.Argument(None, help="Only show snapshots of this directory.", resolve_path=True),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """List stored snapshots."""
    resolved_db = _resolve_db(db)
    if not resolved_db.exists():
        console.print("[yellow]No snapshots stored yet.[/yellow]")
        return

    try:
        with SQLiteSnapshotStore(resolved_db) as store:
            rows = store.list_snapshots(str(path) if path is not None else None)
    except StorageError as exc:
        _fail(str(exc))

    if not rows:
        console.print("[yellow]No snapshots stored yet.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("Directory")
    table.add_column("Created")
    table.add_column("Files", justify="right")
    for row in rows:
        table.add_row(str(row["id"]), row["path"], row["created_at"], str(row["entry_count"]))
    console.print(table)


@app.command()
def show(
    snapshot_id: int = typer.Argument(..., help="Snapshot ID"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Show the entries of a stored snapshot."""
    resolved_db = _resolve_db(db)
    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")

    try:
        with SQLiteSnapshotStore(resolved_db) as store:
            stored = store.load(snapshot_id)
    except StorageError as exc:
        _fail(str(exc))

    console.print(f"[bold]{stored.path}[/bold] at {stored.created_at.isoformat()}")
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Path")
    table.add_column("Checksum")
    table.add_column("Modified")
    for rel_path in sorted(stored.entries):
        record = stored.entries[rel_path]
        table.add_row(rel_path, record.checksum, record.mod_time.isoformat())
    console.print(table)


@app.command()
def prune(
    path: Path = typer.Argument(..., help="Directory whose snapshots to prune.", resolve_path=True),
    keep: int = typer.Option(1, "--keep", min=0, help="Number of recent snapshots to keep"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Remove old snapshots of a directory."""
    resolved_db = _resolve_db(db)
    if not resolved_db.exists():
        console.print("[yellow]Database not found, nothing to prune.[/yellow]")
        return

    try:
        with SQLiteSnapshotStore(resolved_db) as store:
            removed = store.prune(str(path), keep=keep)
    except StorageError as exc:
        _fail(str(exc))
    console.print(f"Removed {removed} old snapshots.")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the web API."""
    import uvicorn

    console.print(f"Starting web API on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
