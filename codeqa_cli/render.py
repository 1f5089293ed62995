"""Rich rendering for answers, references and search hits."""

from __future__ import annotations

from typing import List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax

from .models import Reference, RepositoryMeta, SearchHit


def print_reference(console: Console, ref: Reference, meta: Optional[RepositoryMeta] = None) -> None:
    title = f"[bold cyan]{escape(ref.file)}[/bold cyan]"
    if ref.display_range:
        title += f" [dim]{ref.display_range}[/dim]"
    console.print(title)
    if ref.explanation:
        console.print(f"  [italic]{escape(ref.explanation)}[/italic]")

    if ref.resolved:
        code = "\n".join(ref.lines or ())
        lexer = Syntax.guess_lexer(ref.file, code=code)
        console.print(Syntax(code, lexer, line_numbers=True, start_line=ref.actual_start or 1, word_wrap=True))
        if meta is not None:
            console.print(f"  [dim]{meta.blob_url(ref.file, ref.actual_start, ref.actual_end)}[/dim]")
    else:
        # File is not in the corpus; fall back to the engine's own snippet
        console.print("  [yellow]⚠ file not found in this codebase[/yellow]")
        if ref.snippet:
            console.print(Syntax(ref.snippet, Syntax.guess_lexer(ref.file, code=ref.snippet), word_wrap=True))
    console.print()


def print_answer(
    console: Console,
    answer: str,
    references: Sequence[Reference] = (),
    tags: Sequence[str] = (),
    refactor_suggestion: Optional[str] = None,
    meta: Optional[RepositoryMeta] = None,
) -> None:
    console.print(Panel(escape(answer), title="Answer", border_style="green"))
    if tags:
        console.print(" ".join(f"[black on cyan] {escape(tag)} [/black on cyan]" for tag in tags))
        console.print()

    if references:
        console.print(f"[bold]References ({len(references)})[/bold]")
        for ref in references:
            print_reference(console, ref, meta)

    if refactor_suggestion:
        console.print(Panel(escape(refactor_suggestion), title="💡 Refactor suggestion", border_style="yellow"))


def print_search_hits(console: Console, hits: List[SearchHit]) -> None:
    for hit in hits:
        console.print(f"[bold cyan]{escape(hit.path)}[/bold cyan] [dim]({len(hit.matches)})[/dim]")
        for match in hit.matches:
            line = escape(match.line)
            console.print(f"  [dim]{match.line_number:>5}[/dim]  {line}")
