# src/notescribe/batch_cli.py
from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Deque, Iterable, List, Tuple

import typer
from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from . import __version__
from .config import configure_logging
from .pipeline.directives import detect_syntax
from .pipeline.migrate import migrate_text
from .pipeline.validate import validate_text
from .run_index import (
    MigrationRecord,
    content_sha256,
    make_record,
    read_records,
    upsert_record,
)

app = typer.Typer(
    add_completion=False,
    help="notescribe-batch: migrate and validate many page files",
)
console = Console()
log = logging.getLogger(__name__)


def _iter_pages(page_dir: Path, pattern: str) -> Iterable[Path]:
    """
    Recursively yield page files in the given directory.
    """
    yield from sorted(p for p in page_dir.rglob(pattern) if p.is_file())


def process_file(path: Path, *, write: bool) -> MigrationRecord:
    """
    Migrate one page file to tag syntax and validate the result.
    The file is only rewritten when write is set and something changed.
    """
    raw = path.read_bytes()
    before_sha = content_sha256(raw)
    text = raw.decode("utf-8")
    syntax = detect_syntax(text)
    migrated, changes = migrate_text(text)
    issues = validate_text(migrated).issues

    written = False
    after_sha = before_sha
    if write and changes:
        data = migrated.encode("utf-8")
        path.write_bytes(data)
        after_sha = content_sha256(data)
        written = True

    log.debug("%s: %s, %d change(s), %d issue(s)", path, syntax, changes, len(issues))
    return make_record(
        path=path,
        sha256_before=before_sha,
        sha256_after=after_sha,
        syntax_before=syntax,
        changes=changes,
        issues=len(issues),
        written=written,
        tool_version=__version__,
    )


def _make_progress(total: int) -> Progress:
    """
    Create a Rich Progress instance with custom columns.
    """
    return Progress(
        TextColumn("[bold cyan]Progress[/bold cyan]"),
        BarColumn(),
        MofNCompleteColumn(),
        TextColumn("•"),
        TimeElapsedColumn(),
        TextColumn("•"),
        TimeRemainingColumn(),
        expand=True,
    )


@app.command("run")
def run(
    page_dir: Path = typer.Option(
        ...,
        "--dir",
        "-i",
        exists=True,
        file_okay=False,
        readable=True,
        help="Directory containing page text files (searched recursively).",
    ),
    pattern: str = typer.Option("*.md", "--glob", help="File name pattern."),
    write: bool = typer.Option(
        False,
        "--write/--dry-run",
        help="Write migrated files back (default: dry run).",
    ),
    report_dir: Path = typer.Option(
        Path("output"),
        "--report-dir",
        "-o",
        help="Where migrations.csv and migrations.jsonl are kept.",
    ),
    tail_lines: int = typer.Option(
        20,
        "--tail-lines",
        help="How many recent output lines to keep visible in the OUTPUT window.",
    ),
    stop_on_error: bool = typer.Option(
        False,
        "--stop-on-error/--keep-going",
        help="Stop the batch at the first unreadable file (default: keep going).",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """
    Migrate every page file under --dir from bracket to tag syntax, validate
    the result, and record each file in the migration report.
    """
    configure_logging(verbose)
    pages = list(_iter_pages(page_dir, pattern))
    if not pages:
        console.print(f"[yellow]No files matching {pattern} in {page_dir}[/yellow]")
        raise typer.Exit(code=0)

    report_dir = report_dir.resolve()

    # Rolling buffer for the OUTPUT pane
    output_lines: Deque[str] = deque(maxlen=max(10, tail_lines))

    progress = _make_progress(total=len(pages))
    task_id = progress.add_task("batch", total=len(pages))

    def _render_group() -> Group:
        shown = "\n".join(output_lines) if output_lines else "(waiting for output...)"
        output_panel = Panel(
            shown,
            title="OUTPUT (latest)",
            subtitle="older outputs are omitted",
            border_style="white",
        )
        return Group(output_panel, progress)

    changed = 0
    with_issues: List[Tuple[Path, int]] = []
    failed: List[str] = []

    with Live(
        _render_group(), console=console, refresh_per_second=15, transient=False
    ) as live:
        for idx, page in enumerate(pages, start=1):
            try:
                rec = process_file(page, write=write)
            except (OSError, UnicodeDecodeError) as e:
                failed.append(f"{page} :: {e}")
                output_lines.append(f"[FAILED] {escape(page.name)} :: {escape(str(e))}")
                progress.update(task_id, advance=1)
                live.update(_render_group())
                if stop_on_error:
                    break
                continue

            upsert_record(report_dir, rec)
            if rec.changes:
                changed += 1
            if rec.issues:
                with_issues.append((page, rec.issues))
            verb = "migrated" if rec.written else "would migrate"
            output_lines.append(
                f"[{idx}/{len(pages)}] {escape(page.name)}: {rec.syntax_before}, "
                f"{verb} {rec.changes}, issues {rec.issues}"
            )
            progress.update(task_id, advance=1)
            live.update(_render_group())

    # Final summary
    console.rule("[bold]SUMMARY")
    total = len(pages)
    label = "Migrated" if write else "Would migrate"
    console.print(f"[green]{label}:[/green] {changed}/{total}")
    if with_issues:
        console.print(f"[yellow]Files with issues:[/yellow] {len(with_issues)}")
        for path, count in with_issues:
            console.print(f"  - {escape(str(path))} ({count})")
    if failed:
        console.print(f"[red]Failed:[/red] {len(failed)}")
        for line in failed:
            console.print(f"  - {escape(line)}")
        raise typer.Exit(code=1)
    console.print(f"[green]Recorded:[/green] {len(read_records(report_dir))} file(s)")
    console.print(f"Report: [underline]{report_dir / 'migrations.csv'}[/underline]")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
