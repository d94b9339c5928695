"""Human-readable rendering of comparison results."""

from __future__ import annotations

from typing import Iterable

from rich.console import Console
from rich.table import Table

from bitrot.compare import Comparison

EXIT_OK = 0
EXIT_FLAGGED = 1
EXIT_ERROR = 2


def exit_code(comparison: Comparison) -> int:
    return EXIT_OK if comparison.success() else EXIT_FLAGGED


def summary_table(comparison: Comparison) -> Table:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Category")
    table.add_column("Files", justify="right")

    rows = [
        ("Unchanged", len(comparison.unchanged_paths)),
        ("Modified", len(comparison.modified_paths)),
        ("Added", len(comparison.added_paths)),
        ("Deleted", len(comparison.deleted_paths)),
        ("Renamed", len(comparison.renamed_paths)),
        ("[bold red]Flagged[/bold red]", len(comparison.flagged_paths)),
    ]
    for label, count in rows:
        table.add_row(label, str(count))
    table.add_section()
    table.add_row("Total checked", str(comparison.total_checked()))
    return table


def _print_paths(console: Console, title: str, paths: Iterable[str], style: str) -> None:
    paths = sorted(paths)
    if not paths:
        return
    console.print(f"[{style}]{title}:[/{style}]")
    for path in paths:
        console.print(f"  {path}", style=style, markup=False, highlight=False)


def render(console: Console, comparison: Comparison, *, verbose: bool = False) -> None:
    """Print the summary, the flagged paths and, if verbose, every other change."""
    console.print(summary_table(comparison))

    _print_paths(console, "Possibly corrupted (content changed, mtime did not)", comparison.flagged_paths, "bold red")

    if verbose:
        _print_paths(console, "Modified", comparison.modified_paths, "yellow")
        _print_paths(console, "Added", comparison.added_paths, "green")
        _print_paths(console, "Deleted", comparison.deleted_paths, "cyan")
        _print_paths(
            console,
            "Renamed",
            (f"{pair.old_path} -> {pair.new_path}" for pair in comparison.renamed_paths),
            "blue",
        )

    if comparison.success():
        console.print("[green]No silent corruption detected.[/green]")
    else:
        console.print(
            f"[bold red]{len(comparison.flagged_paths)} file(s) changed without a modification "
            "time update.[/bold red]"
        )
