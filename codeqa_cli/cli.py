"""Typer-based CLI for CodeQA: ask questions about a ZIP archive or GitHub repository."""

from __future__ import annotations

import json
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .cli_history import history_app
from .cli_setup import config_app
from .errors import CodeQAError
from .file_tree import render_tree
from .orchestrator import CodeQASession
from .render import print_answer, print_reference, print_search_hits
from .search import count_matches
from .tasks import IngestionRunner

console = Console()

app = typer.Typer(
    help="🔎 CodeQA CLI: ask questions about a codebase and get answers with line-level references.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(history_app, name="history")
app.add_typer(config_app, name="config")


def configure_logging(verbose: bool = False) -> None:
    """Route ``codeqa_cli`` log records through rich on stderr."""
    level = logging.DEBUG if verbose else logging.WARNING
    logger = logging.getLogger("codeqa_cli")
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers so repeated invocations don't duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=verbose)
    handler.setLevel(level)
    logger.addHandler(handler)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"CodeQA CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging."),
):
    """CodeQA CLI: load a ZIP or GitHub repo, then search, browse or ask about it."""
    configure_logging(verbose)


def _fail(exc: Exception) -> typer.Exit:
    typer.echo(typer.style(f"❌ {exc}", fg=typer.colors.RED), err=True)
    return typer.Exit(code=1)


def _open(source: str, quiet: bool = False) -> CodeQASession:
    """Create a session and ingest ``source``, exiting with code 1 on failure."""
    session = CodeQASession()
    try:
        with IngestionRunner(max_workers=1) as runner:
            session.runner = runner
            result = session.load(source)
    except CodeQAError as exc:
        raise _fail(exc)
    finally:
        session.runner = None

    if quiet:
        return session
    summary = f"[dim]Loaded {len(result.corpus)} files from {escape(result.source)}"
    if result.skipped:
        summary += f" ({len(result.skipped)} skipped)"
    console.print(summary + "[/dim]")
    return session


@app.command("ask")
def ask(
    source: str = typer.Argument(..., help="Path to a .zip archive or a GitHub repository URL."),
    question: str = typer.Argument(..., help="Question about the codebase."),
    max_chars: Optional[int] = typer.Option(None, "--max-chars", min=1, help="Context budget in characters."),
    no_save: bool = typer.Option(False, "--no-save", help="Don't record the answer in history."),
    as_json: bool = typer.Option(False, "--json", help="Print the answer as JSON."),
):
    """Ask a question and print the answer with resolved references."""
    session = _open(source, quiet=as_json)
    try:
        if as_json:
            answer = session.ask(question, max_chars=max_chars, save=not no_save)
        else:
            with console.status("Asking the reasoning engine..."):
                answer = session.ask(question, max_chars=max_chars, save=not no_save)
    except CodeQAError as exc:
        raise _fail(exc)

    if as_json:
        typer.echo(json.dumps({
            "answer": answer.answer,
            "references": [ref.to_dict() for ref in answer.references],
            "tags": list(answer.tags),
            "refactorSuggestion": answer.refactor_suggestion,
            "source": session.result.source,
        }, indent=2))
        return

    print_answer(
        console,
        answer.answer,
        answer.references,
        answer.tags,
        answer.refactor_suggestion,
        meta=session.result.meta,
    )


@app.command("search")
def search(
    source: str = typer.Argument(..., help="Path to a .zip archive or a GitHub repository URL."),
    query: str = typer.Argument(..., help="Case-insensitive text to look for."),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Maximum number of files."),
):
    """Search every file for a substring."""
    session = _open(source)
    hits = session.search(query, limit=limit)
    if not hits:
        typer.echo(f"No matches for '{query}'.")
        raise typer.Exit(code=0)
    console.print(f"[bold]{count_matches(hits)} matches in {len(hits)} files[/bold]")
    print_search_hits(console, hits)


@app.command("tree")
def tree(
    source: str = typer.Argument(..., help="Path to a .zip archive or a GitHub repository URL."),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", min=0, help="Collapse directories below this depth."),
):
    """Show the directory tree of the ingested files."""
    session = _open(source)
    label = session.result.meta.full_name if session.result.meta else session.result.source
    console.print(render_tree(session.tree(), label=label, max_depth=depth))


@app.command("files")
def files(
    source: str = typer.Argument(..., help="Path to a .zip archive or a GitHub repository URL."),
    skipped: bool = typer.Option(False, "--skipped", help="List dropped files instead."),
):
    """List ingested files with line counts."""
    session = _open(source)
    result = session.result

    if skipped:
        if not result.skipped:
            typer.echo("No files were skipped.")
            raise typer.Exit(code=0)
        table = Table(show_header=True, header_style="bold yellow")
        table.add_column("File")
        table.add_column("Reason", no_wrap=True)
        table.add_column("Detail", style="dim")
        for item in result.skipped:
            table.add_row(escape(item.path), item.reason.value, escape(item.detail))
        console.print(table)
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("File")
    table.add_column("Lines", justify="right")
    table.add_column("Chars", justify="right")
    for path in result.corpus:
        table.add_row(escape(path), str(result.corpus.line_count(path)), str(len(result.corpus[path])))
    console.print(table)


@app.command("context")
def context(
    source: str = typer.Argument(..., help="Path to a .zip archive or a GitHub repository URL."),
    max_chars: Optional[int] = typer.Option(None, "--max-chars", min=1, help="Context budget in characters."),
):
    """Print the context window exactly as it would be sent to the reasoning engine."""
    session = _open(source, quiet=True)
    typer.echo(session.context(max_chars=max_chars))


@app.command("show")
def show(
    source: str = typer.Argument(..., help="Path to a .zip archive or a GitHub repository URL."),
    file: str = typer.Argument(..., help="File path inside the codebase."),
    start: Optional[int] = typer.Option(None, "--start", "-s", help="First line (1-based)."),
    end: Optional[int] = typer.Option(None, "--end", "-e", help="Last line (inclusive)."),
):
    """Show a line range of one file, clamped to the file's length."""
    session = _open(source)
    ref = session.resolve(file, start, end)
    if not ref.resolved:
        typer.echo(typer.style(f"❌ File '{file}' not found in this codebase.", fg=typer.colors.RED), err=True)
        raise typer.Exit(code=1)
    print_reference(console, ref, session.result.meta)


if __name__ == "__main__":
    app()
