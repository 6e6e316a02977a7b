"""show / status commands — place review issues on the current working tree."""

from __future__ import annotations

import os

import click
from rich.console import Console
from rich.table import Table

from anchorlens_cli.commands.common import ingest_review_file, read_workspace_file
from anchorlens_core.models import normalize_path

console = Console()

_severity_style = {"high": "red", "medium": "yellow", "low": "green"}
_confidence_style = {"exact": "green", "approximate": "yellow", "stale": "dim"}


def _relative(root: str, filename: str) -> str:
    if os.path.isabs(filename):
        filename = os.path.relpath(filename, root)
    return normalize_path(filename)


def _first_line(message: str) -> str:
    return message.split("\n", 1)[0]


@click.command("show")
@click.argument("filename")
@click.option("--review", "review_path", default=None, help="Review JSON file. Defaults to review_file from config.")
@click.option("--revision", default=None, help="Revision the review was generated against.")
@click.option("--root", default=".", show_default=True, help="Workspace root that issue paths are relative to.")
@click.option(
    "--surface",
    type=click.Choice(["annotations", "diagnostics", "both"]),
    default="both",
    show_default=True,
    help="Which presentation surface to print.",
)
@click.pass_context
def show_cmd(ctx, filename: str, review_path: str | None, revision: str | None, root: str, surface: str):
    """Show where a review's issues sit in FILENAME right now.

    Each issue is matched against the file's current text: exact when its
    line is unchanged, approximate when the line moved, hidden when the
    text is gone or the issue was dismissed.
    """
    engine = ctx.obj["engine"]
    ingest_review_file(ctx, review_path, revision)

    rel = _relative(root, filename)
    text = read_workspace_file(root, rel)
    if text is None:
        raise click.UsageError(f"File not found: {os.path.join(root, rel)}")

    engine.sync.open_file(rel, text)
    if not engine.store.issues_for(rel):
        console.print(f"[yellow]No issues reported for {rel}.[/yellow]")
        return

    if surface in ("annotations", "both"):
        table = Table(title=f"Annotations — {rel}", show_header=True, header_style="bold cyan")
        table.add_column("Line", justify="right", width=6)
        table.add_column("Severity", width=8)
        table.add_column("Location", width=12)
        table.add_column("Title", max_width=50)
        table.add_column("Key", overflow="fold")
        for a in engine.annotations.rendered(rel):
            sev = _severity_style[a.severity.value]
            conf = _confidence_style[a.confidence.value]
            table.add_row(
                str(a.line + 1),
                f"[{sev}]{a.severity.value}[/{sev}]",
                f"[{conf}]{a.confidence.value}[/{conf}]",
                _first_line(a.message),
                a.key,
            )
        console.print(table)

    if surface in ("diagnostics", "both"):
        table = Table(title=f"Diagnostics — {rel}", show_header=True, header_style="bold cyan")
        table.add_column("Line", justify="right", width=6)
        table.add_column("Level", width=12)
        table.add_column("Code", width=8)
        table.add_column("Title", max_width=50)
        table.add_column("Key", overflow="fold")
        for d in engine.diagnostics.rendered(rel):
            table.add_row(str(d.line + 1), d.level.value, d.code, _first_line(d.message), d.key)
        console.print(table)

    counts = engine.file_status(rel, text)
    hidden = counts["dismissed"] + counts["stale"] + counts["file_scoped"]
    if hidden:
        console.print(
            f"[dim]{counts['dismissed']} dismissed, {counts['stale']} stale, "
            f"{counts['file_scoped']} file-level issue(s) not shown.[/dim]"
        )


@click.command("status")
@click.option("--review", "review_path", default=None, help="Review JSON file. Defaults to review_file from config.")
@click.option("--revision", default=None, help="Revision the review was generated against.")
@click.option("--root", default=".", show_default=True, help="Workspace root that issue paths are relative to.")
@click.pass_context
def status_cmd(ctx, review_path: str | None, revision: str | None, root: str):
    """Summarise every file in the review against the working tree."""
    engine = ctx.obj["engine"]
    result = ingest_review_file(ctx, review_path, revision)

    files = engine.store.files()
    if not files:
        console.print("[yellow]The review contains no issues.[/yellow]")
        return

    table = Table(
        title=f"Review status — {result.new_revision[:7] or 'unknown revision'}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("File")
    table.add_column("Issues", justify="right")
    table.add_column("Visible", justify="right")
    table.add_column("Dismissed", justify="right")
    table.add_column("Stale", justify="right")
    table.add_column("File-level", justify="right")

    for rel in files:
        # A deleted file has no lines, so every line-bearing issue is stale.
        text = read_workspace_file(root, rel) or ""
        counts = engine.file_status(rel, text)
        table.add_row(
            rel,
            str(counts["total"]),
            f"[green]{counts['visible']}[/green]",
            str(counts["dismissed"]),
            f"[dim]{counts['stale']}[/dim]",
            str(counts["file_scoped"]),
        )

    console.print(table)
