# src/notescribe/cli.py
from __future__ import annotations
from pathlib import Path
import logging
import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import RenderMode, configure_logging
from .models.schema import ExtractedMetadata
from .pipeline.directives import detect_syntax
from .pipeline.extract import extract
from .pipeline.migrate import migrate_text
from .pipeline.page import render_page
from .pipeline.render import to_plain_text
from .pipeline.validate import apply_fixes, cleanup_empty_tags, validate_text

app = typer.Typer(
    add_completion=False, help="notescribe: manuscript page annotation markup"
)

console = Console()
log = logging.getLogger(__name__)


def _abort(msg: str, code: int = 1) -> None:
    """
    Print an error message and exit the program.
    """
    console.print(f"[bold red]Error:[/bold red] {msg}")
    raise typer.Exit(code=code)


def _read_page(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        _abort(f"{path} is not valid UTF-8 text")
    except OSError as e:
        _abort(f"Cannot read {path}: {e.strerror}")


def _metadata_panel(metadata: ExtractedMetadata, title: str) -> Panel:
    """
    Render extracted metadata as a compact panel.
    """
    rows = []
    if metadata.warning:
        rows.append(f"[bold red]Warning:[/bold red] {escape(metadata.warning)}")
    if metadata.summary:
        rows.append(f"[yellow]Summary:[/yellow] {escape(metadata.summary)}")
    for label, value in (
        ("Language", metadata.language),
        ("Page", metadata.page_label),
        ("Signature", metadata.signature),
    ):
        if value:
            rows.append(f"[bold]{label}:[/bold] {escape(value)}")
    for label, values, sep in (
        ("Keywords", metadata.keywords, ", "),
        ("Vocabulary", metadata.vocabulary, ", "),
        ("Notes", metadata.meta, " • "),
        ("Abbreviations", metadata.abbreviations, ", "),
    ):
        if values:
            rows.append(f"[bold]{label}:[/bold] {escape(sep.join(values))}")
    body = "\n".join(rows) if rows else "[dim](no metadata)[/dim]"
    return Panel.fit(body, title=title)


def _verbose_option() -> bool:
    return typer.Option(False, "--verbose", "-v", help="Debug logging")


@app.command("extract")
def extract_cmd(
    page: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Page text file"
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print metadata as JSON instead of a panel"
    ),
    verbose: bool = _verbose_option(),
) -> None:
    """
    Extract metadata directives and print the clean text.
    """
    configure_logging(verbose)
    clean_text, metadata = extract(_read_page(page))
    if as_json:
        console.print_json(metadata.model_dump_json())
        return
    console.print(_metadata_panel(metadata, title=page.name))
    console.print(clean_text, markup=False, highlight=False)


@app.command("render")
def render_cmd(
    page: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Page text file"
    ),
    show_notes: bool = typer.Option(
        True, "--notes/--no-notes", help="Show editorial notes and marginalia"
    ),
    show_metadata: bool = typer.Option(
        True, "--metadata/--no-metadata", help="Show the page metadata panel"
    ),
    reveal_images: bool = typer.Option(
        False, "--reveal-images", help="Include image descriptions (editing view)"
    ),
    fmt: str = typer.Option("markup", "--format", help="markup | text | json"),
    verbose: bool = _verbose_option(),
) -> None:
    """
    Render a page: extract metadata, then resolve inline annotations.
    """
    configure_logging(verbose)
    if fmt not in ("markup", "text", "json"):
        _abort(f"Unknown format: {fmt}")

    mode = RenderMode(
        show_metadata=show_metadata,
        show_notes=show_notes,
        reveal_image_descriptions=reveal_images,
    )
    result = render_page(_read_page(page), mode)

    if fmt == "json":
        console.print_json(result.model_dump_json())
        return
    if result.metadata is not None:
        console.print(_metadata_panel(result.metadata, title=page.name))
    body = result.markup if fmt == "markup" else to_plain_text(result.spans)
    console.print(body, markup=False, highlight=False)


@app.command("validate")
def validate_cmd(
    page: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Page text file"
    ),
    fix: bool = typer.Option(
        False, "--fix", help="Apply suggested fixes and write the file back"
    ),
    cleanup_empty: bool = typer.Option(
        False, "--cleanup-empty", help="Remove empty directives before validating"
    ),
    verbose: bool = _verbose_option(),
) -> None:
    """
    Check a page for unbalanced or unknown annotation markup.
    Exits with status 1 when issues remain.
    """
    configure_logging(verbose)
    original = text = _read_page(page)

    if cleanup_empty:
        text, removed = cleanup_empty_tags(text)
        console.print(f"[yellow]Removed[/yellow] {removed} empty directive(s).")

    result = validate_text(text)
    if fix and result.issues:
        text, applied = apply_fixes(text, result.issues)
        console.print(f"[yellow]Applied[/yellow] {applied} fix(es).")
        result = validate_text(text)

    if text != original:
        page.write_text(text, encoding="utf-8")
        log.info("wrote %s", page)

    if result.valid:
        console.print(f"[bold green]OK[/bold green] {page.name}: no issues.")
        return

    table = Table(title=f"{page.name}: {len(result.issues)} issue(s)")
    table.add_column("Pos", justify="right")
    table.add_column("Type", style="cyan")
    table.add_column("Message")
    table.add_column("Context", style="dim")
    for issue in result.issues:
        table.add_row(
            str(issue.position),
            issue.type,
            escape(issue.message),
            escape(issue.context),
        )
    console.print(table)
    raise typer.Exit(code=1)


@app.command("migrate")
def migrate_cmd(
    page: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Page text file"
    ),
    write: bool = typer.Option(
        False, "--write", help="Write the migrated text back (default: dry run)"
    ),
    verbose: bool = _verbose_option(),
) -> None:
    """
    Rewrite legacy bracket directives into tag syntax.
    """
    configure_logging(verbose)
    text = _read_page(page)
    syntax = detect_syntax(text)
    migrated, changes = migrate_text(text)

    if not write:
        console.print(
            Panel.fit(
                f"Syntax: [bold]{syntax}[/bold]\n"
                f"Would migrate [cyan]{changes}[/cyan] directive(s).",
                title="dry run",
            )
        )
        return

    if changes:
        page.write_text(migrated, encoding="utf-8")
    console.print(
        f"[bold green]Done[/bold green]. Migrated {changes} directive(s) in {page.name}."
    )


@app.command("version")
def version() -> None:
    """
    Show version information.
    """
    console.print(f"notescribe version {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
