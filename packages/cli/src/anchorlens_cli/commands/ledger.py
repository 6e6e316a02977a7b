"""dismiss / restore / dismissed commands — manage the dismissal ledger."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from anchorlens_core.models import normalize_issue_key, split_issue_key

console = Console()


def _warn_not_persisted(engine) -> None:
    console.print(
        "[yellow]Warning: the change applies to this session but could not be saved "
        f"({engine.ledger.last_error}).[/yellow]"
    )


@click.command("dismiss")
@click.argument("key")
@click.pass_context
def dismiss_cmd(ctx, key: str):
    """Mark the issue identified by KEY (filename:id:title) as fixed.

    The issue disappears from both inline annotations and diagnostics, in
    this and every later review that reports the same key.
    """
    try:
        key = normalize_issue_key(key)
    except ValueError:
        raise click.UsageError(f"Invalid issue key {key!r}. Expected filename:id:title, e.g. 'a.ts:1:Unused variable'.")

    engine = ctx.obj["engine"]
    if engine.ledger.is_dismissed(key):
        console.print(f"[dim]Already dismissed: {key}[/dim]")
        return

    if not engine.sync.mark_as_fixed(key):
        _warn_not_persisted(engine)
    console.print(f"[green]Marked as fixed:[/green] {key}")


@click.command("restore")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def restore_cmd(ctx, yes: bool):
    """Bring back every dismissed issue."""
    engine = ctx.obj["engine"]
    count = len(engine.ledger)
    if count == 0:
        console.print("[yellow]No dismissed issues.[/yellow]")
        return
    if not yes and not click.confirm(f"Restore {count} dismissed issue(s)?", default=False):
        return

    if not engine.sync.restore_all():
        _warn_not_persisted(engine)
    console.print(f"[green]Restored {count} issue(s).[/green]")


@click.command("dismissed")
@click.pass_context
def dismissed_cmd(ctx):
    """List the keys of every dismissed issue."""
    engine = ctx.obj["engine"]
    keys = engine.ledger.keys()
    if not keys:
        console.print("[yellow]No dismissed issues.[/yellow]")
        return

    table = Table(title="Dismissed issues", show_header=True, header_style="bold cyan")
    table.add_column("File")
    table.add_column("ID", justify="right", width=6)
    table.add_column("Title")
    for key in keys:
        try:
            filename, issue_id, title = split_issue_key(key)
        except ValueError:
            table.add_row(key, "?", "")
            continue
        table.add_row(filename, str(issue_id), title)
    console.print(table)
