"""Command-line interface for anchorkit."""

import logging
import sys
from pathlib import Path

import typer
import yaml
from rich.console import Console
from rich.table import Table

from anchorkit import __version__
from anchorkit.batch import annotate, check_reattach, load_from_store
from anchorkit.config import DEFAULT_STORE_FILE, validate_offsets
from anchorkit.document import Document
from anchorkit.errors import AnchorkitError
from anchorkit.logging_config import setup_logging
from anchorkit.store import YamlStore
from anchorkit.tree import TreeRange

app = typer.Typer(
    name="anchorkit",
    help="Anchor annotations to HTML documents and mark them.",
)
console = Console()


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every anchoring step"),
) -> None:
    """Anchor annotations to HTML documents and mark them."""
    setup_logging(logging.DEBUG if verbose else logging.WARNING, stream=sys.stderr)


def _load_document(path: Path) -> Document:
    return Document.from_html(path.read_text(encoding="utf-8"))


def _selection(document: Document, start: int | None, end: int | None, quote: str | None) -> TreeRange:
    """Turn --start/--end or --quote into a tree range."""
    snapshot = document.snapshot()
    if quote is not None:
        start = snapshot.text.find(quote)
        if start < 0:
            raise ValueError(f"Quote not found in document: '{quote}'")
        end = start + len(quote)
    if start is None or end is None:
        raise ValueError("Give either --start and --end, or --quote")
    validate_offsets(start, end)
    tree_range = snapshot.offsets_to_tree_range(start, end)
    if tree_range is None:
        raise ValueError(f"Offsets {start}-{end} are outside the document text ({len(snapshot.text)} characters)")
    return tree_range


@app.command()
def select(
    html: Path = typer.Argument(..., exists=True, dir_okay=False, help="HTML document"),
    start: int | None = typer.Option(None, "--start", help="Start offset in the document text"),
    end: int | None = typer.Option(None, "--end", help="End offset in the document text"),
    quote: str | None = typer.Option(None, "--quote", "-q", help="Select the first occurrence of this text"),
    source: str | None = typer.Option(None, "--source", "-s", help="Document identifier (default: file URI)"),
    note: str | None = typer.Option(None, "--note", "-n", help="Note to attach"),
    store_path: Path = typer.Option(Path(DEFAULT_STORE_FILE), "--store", help="YAML annotation store"),
) -> None:
    """Create an annotation for a selection and add it to the store."""
    try:
        document = _load_document(html)
        tree_range = _selection(document, start, end, quote)
        annotation = annotate(
            document,
            tree_range,
            source=source or html.resolve().as_uri(),
            note=note,
            store=YamlStore(store_path),
            mark=False,
        )
    except (AnchorkitError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from e

    console.print(f"[bold green]Saved annotation[/bold green] {annotation.id} to {store_path}")
    console.print(yaml.dump(annotation.to_payload()["target"], allow_unicode=True, sort_keys=False))


@app.command()
def anchor(
    html: Path = typer.Argument(..., exists=True, dir_okay=False, help="HTML document"),
    store_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="YAML annotation store"),
    page_url: str | None = typer.Option(None, "--page-url", "-p", help="Only load annotations for this page"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the marked HTML here"),
) -> None:
    """Anchor stored annotations in a document and report what was shown."""
    try:
        document = _load_document(html)
        report = load_from_store(document, YamlStore(store_path), page_url=page_url)
    except (AnchorkitError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from e

    table = Table(title=f"Annotations in {html.name}")
    table.add_column("Id", style="dim")
    table.add_column("Quote")
    table.add_column("Strategy")
    table.add_column("Status")
    for outcome in report.outcomes:
        quote = outcome.annotation.selector.quote
        table.add_row(
            outcome.annotation.id[:8],
            quote.exact[:40] if quote else "",
            outcome.strategy.value if outcome.strategy else "-",
            outcome.error or outcome.status,
        )
    console.print(table)
    console.print(f"[bold]{report.summary()}[/bold]")

    if output is not None:
        output.write_text(document.to_html(), encoding="utf-8")
        console.print(f"[bold green]Saved to:[/bold green] {output}")


@app.command()
def check(
    html: Path = typer.Argument(..., exists=True, dir_okay=False, help="HTML document"),
    start: int | None = typer.Option(None, "--start", help="Start offset in the document text"),
    end: int | None = typer.Option(None, "--end", help="End offset in the document text"),
    quote: str | None = typer.Option(None, "--quote", "-q", help="Select the first occurrence of this text"),
) -> None:
    """Build selectors for a selection and immediately anchor them again."""
    try:
        document = _load_document(html)
        result = check_reattach(document, _selection(document, start, end, quote))
    except (AnchorkitError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from e

    for step in result.trace.steps:
        detail = f" ({step.detail})" if step.detail else ""
        console.print(f"  {step.strategy.value}: {step.outcome}{detail}")
    if result.result.anchored:
        console.print(
            f"[bold green]Re-anchored[/bold green] via {result.result.strategy.value} "
            f"at {result.result.start}-{result.result.end}"
        )
    else:
        console.print(f"[bold red]Orphaned:[/bold red] {result.result.error}")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"anchorkit {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
