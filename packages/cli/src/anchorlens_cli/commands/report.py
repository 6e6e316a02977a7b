"""report command — write the human-readable Markdown review."""

from __future__ import annotations

import click
from rich.console import Console

from anchorlens_cli.commands.common import ingest_review_file
from anchorlens_core.report import write_report

console = Console()


@click.command("report")
@click.option("--review", "review_path", default=None, help="Review JSON file. Defaults to review_file from config.")
@click.option("--revision", default=None, help="Revision the review was generated against.")
@click.option("--out", "out_dir", default=None, help="Output directory. Defaults to review_dir from config.")
@click.pass_context
def report_cmd(ctx, review_path: str | None, revision: str | None, out_dir: str | None):
    """Write review.md, grouping issues by severity with a summary count per tier."""
    result = ingest_review_file(ctx, review_path, revision)
    path = write_report(result, out_dir or ctx.obj["config"].get("review_dir", "review"))
    console.print(f"[green]Report written to {path} ({len(result.issues)} issue(s)).[/green]")
