"""Critique CLI - inspect fuzzy anchoring and edit tracking from the shell.

Usage:
    critique find ./essay.txt "quikc brown fox" --threshold 0.8
    critique diff ./draft_v1.txt ./draft_v2.txt
    critique track ./draft_v1.txt ./draft_v2.txt suggestions.json --output remapped.json
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from critique.app.config import get_config
from critique.core.models.suggestion import Suggestion
from critique.domain.anchoring.change_detector import TextChangeDetector
from critique.domain.anchoring.similarity import SimilarityMatcher
from critique.utils.logging import setup_logging

app = typer.Typer(
    name="critique",
    help="Critique engine CLI",
    add_completion=False,
)

console = Console()


def _read(path: Path) -> str:
    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


@app.callback()
def main_callback(
    log_level: Annotated[Optional[str], typer.Option("--log-level", "-l", help="Logging level")] = None,
) -> None:
    """Configure logging before any command runs."""
    level = (log_level or get_config().log_level).upper()
    setup_logging(level=level, console_output=True, file_output=False)


@app.command("find")
def find_snippets(
    document: Annotated[Path, typer.Argument(help="Text file to search")],
    snippets: Annotated[list[str], typer.Argument(help="Snippet(s) to locate")],
    threshold: Annotated[Optional[float], typer.Option("--threshold", "-t", help="Minimum similarity (0-1)")] = None,
) -> None:
    """Locate snippets in a document with fuzzy matching."""
    content = _read(document)
    anchoring = get_config().anchoring
    matcher = SimilarityMatcher(threshold=anchoring.similarity_threshold, min_window=anchoring.min_window)

    if not 0.0 <= (threshold if threshold is not None else matcher.threshold) <= 1.0:
        console.print("[red]Error:[/red] --threshold must be between 0 and 1")
        raise typer.Exit(1)

    if len(snippets) == 1:
        matches = matcher.find(content, snippets[0], threshold)
    else:
        matches = matcher.find_all(content, snippets, threshold)

    if not matches:
        console.print("[yellow]No matches found[/yellow]")
        raise typer.Exit(1)

    table = Table(title=f"Matches in {document.name}")
    table.add_column("Start", justify="right")
    table.add_column("End", justify="right")
    table.add_column("Similarity", justify="right")
    table.add_column("Text")
    if len(snippets) > 1:
        table.add_column("Snippet")

    for match in matches:
        row = [str(match.start), str(match.end), f"{match.similarity or 0.0:.3f}", match.text]
        if len(snippets) > 1:
            row.append(match.original_snippet or "")
        table.add_row(*row)

    console.print(table)


@app.command("diff")
def diff_files(
    old: Annotated[Path, typer.Argument(help="Previous version")],
    new: Annotated[Path, typer.Argument(help="Current version")],
) -> None:
    """Show the edited region between two versions of a document."""
    changes = TextChangeDetector().detect_changes(_read(old), _read(new))
    if not changes:
        console.print("[green]Documents are identical[/green]")
        return

    for edit in changes:
        console.print(Panel(
            f"[bold]Type:[/bold] {edit.type.value}\n"
            f"[bold]Old range:[/bold] {edit.start}-{edit.old_end}\n"
            f"[bold]New range:[/bold] {edit.start}-{edit.new_end}\n"
            f"[bold]Length delta:[/bold] {edit.length_delta:+d}\n\n"
            f"[red]- {edit.old_text!r}[/red]\n"
            f"[green]+ {edit.new_text!r}[/green]",
            title="Document Edit",
            border_style="blue",
        ))


@app.command("track")
def track_suggestions(
    old: Annotated[Path, typer.Argument(help="Version the suggestions were anchored to")],
    new: Annotated[Path, typer.Argument(help="Edited version")],
    suggestions_file: Annotated[Path, typer.Argument(help="JSON list of suggestions")],
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Write remapped suggestions here")] = None,
) -> None:
    """Remap stored suggestions across an edit, retracting the ones it invalidated."""
    old_text = _read(old)
    new_text = _read(new)

    try:
        raw = json.loads(_read(suggestions_file))
        suggestions = [Suggestion.model_validate(item) for item in raw]
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        console.print(f"[red]Invalid suggestions file:[/red] {e}")
        raise typer.Exit(1)

    detector = TextChangeDetector(get_config().anchoring)
    changes = detector.detect_changes(old_text, new_text)
    updated = detector.update_anchors(suggestions, changes, document=new_text)

    table = Table(title=f"{len(updated)} suggestion(s) after {len(changes)} edit(s)")
    table.add_column("Id")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Anchors")
    table.add_column("Re-evaluate")

    for suggestion in updated:
        colour = "green" if suggestion.is_active else "red"
        table.add_row(
            suggestion.id,
            suggestion.title,
            f"[{colour}]{suggestion.status.value}[/{colour}]",
            ", ".join(f"{a.start}-{a.end}" for a in suggestion.anchors),
            "yes" if detector.needs_re_evaluation(suggestion, changes) else "",
        )
    console.print(table)

    if output is not None:
        output.write_text(
            json.dumps([s.model_dump(mode="json") for s in updated], indent=2),
            encoding="utf-8",
        )
        console.print(f"Saved to [bold]{output}[/bold]")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
