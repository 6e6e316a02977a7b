"""Helpers shared by the commands that need a review loaded."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from anchorlens_core.errors import IngestionError
from anchorlens_core.ingestion import load_review_file
from anchorlens_core.models import ReviewResult

console = Console()


def ingest_review_file(ctx: click.Context, review_path: str | None, revision: str | None) -> ReviewResult:
    """Load the review JSON into the context's engine and return the result.

    Falls back to ``review_file`` from the config when no path is given.
    """
    config = ctx.obj["config"]
    path = Path(review_path or config.get("review_file", "review/review.json"))
    if not path.exists():
        raise click.UsageError(f"Review file not found: {path}")

    try:
        result = load_review_file(path, new_revision=revision)
    except IngestionError as e:
        raise click.ClickException(str(e))

    for reason in result.rejected:
        console.print(f"[yellow]Skipped malformed issue {reason}[/yellow]")

    return ctx.obj["engine"].ingest_result(result)


def read_workspace_file(root: str, filename: str) -> str | None:
    """Return the text of ``root/filename`` or None when it does not exist."""
    path = Path(root) / filename
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8", errors="replace")
