"""`cq history` commands: browse and prune saved answers."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .render import print_answer
from .storage import JsonHistoryStore

console = Console()

history_app = typer.Typer(help="🕘 Saved questions and answers", no_args_is_help=True)


def _short_time(timestamp: str) -> str:
    return timestamp.replace("T", " ")[:16]


@history_app.command("list")
def list_history():
    """List saved answers, newest first."""
    entries = JsonHistoryStore().list()
    if not entries:
        typer.echo("No history yet.")
        raise typer.Exit(code=0)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("When", no_wrap=True)
    table.add_column("Source")
    table.add_column("Question")
    table.add_column("Refs", justify="right")
    for entry in entries:
        table.add_row(
            entry.id[:8],
            _short_time(entry.timestamp),
            escape(entry.source),
            escape(entry.question),
            str(len(entry.references)),
        )
    console.print(table)


@history_app.command("show")
def show_history(entry_id: str = typer.Argument(..., help="Entry id (or unique prefix).")):
    """Show one saved answer in full."""
    entry = JsonHistoryStore().get(entry_id)
    if entry is None:
        typer.echo(f"❌ No history entry '{entry_id}'.", err=True)
        raise typer.Exit(code=1)

    console.print(f"[bold]Q:[/bold] {escape(entry.question)}")
    console.print(f"[dim]{escape(entry.source)} · {_short_time(entry.timestamp)}[/dim]")
    print_answer(console, entry.answer, entry.references, entry.tags, entry.refactor_suggestion)


@history_app.command("delete")
def delete_history(entry_id: str = typer.Argument(..., help="Entry id (or unique prefix).")):
    """Delete one saved answer."""
    store = JsonHistoryStore()
    entry = store.get(entry_id)
    if entry is None:
        typer.echo(f"❌ No history entry '{entry_id}'.", err=True)
        raise typer.Exit(code=1)
    store.remove_by_id(entry.id)
    typer.echo(f"Deleted {entry.id[:8]}.")


@history_app.command("clear")
def clear_history(yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation.")):
    """Delete all saved answers."""
    if not yes and not typer.confirm("Delete all history?", default=False):
        raise typer.Exit(code=0)
    JsonHistoryStore().clear()
    typer.echo("History cleared.")
