"""CLI entry point for anchorlens.

Commands:
  show       — place a review's issues on the current text of a file
  status     — per-file counts of visible, dismissed and stale issues
  dismiss    — mark an issue as fixed (shared by every surface)
  restore    — bring back every dismissed issue
  dismissed  — list dismissed issue keys
  report     — write the Markdown report for a review
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console

from anchorlens_cli.commands.ledger import dismiss_cmd, dismissed_cmd, restore_cmd
from anchorlens_cli.commands.report import report_cmd
from anchorlens_cli.commands.show import show_cmd, status_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured ledger backend from .anchorlens.yml settings.

    Store selection hierarchy:
      store: gist   → GistStore  (requires gist_id and a GitHub token)
      store: sqlite → SQLiteStore (store_path, default .anchorlens.db)
      store: noop   → NoOpStore  (dismissals last for this session only)

    This factory lives in cli.py so neither anchorlens_core nor
    anchorlens_store know about the CLI config format.
    """
    from anchorlens_store.noop import NoOpStore

    store_type = config.get("store", "sqlite")

    if store_type == "gist":
        from anchorlens_store.gist import GistStore

        gist_id = config.get("gist_id")
        token = config.get("github_token")
        if not gist_id or not token:
            console.print(
                "[yellow]GistStore requires gist_id and a GitHub token. "
                "Dismissals will not be persisted.[/yellow]"
            )
            return NoOpStore()
        return GistStore(gist_id=gist_id, token=token)

    if store_type == "sqlite":
        from anchorlens_store.sqlite import SQLiteStore

        return SQLiteStore(db_path=config.get("store_path", ".anchorlens.db"))

    if store_type != "noop":
        console.print(f"[yellow]Unknown store {store_type!r}. Dismissals will not be persisted.[/yellow]")
    return NoOpStore()


def _version() -> str:
    try:
        return importlib.metadata.version("anchorlens")
    except importlib.metadata.PackageNotFoundError:
        return "0.0.0"


@click.group()
@click.version_option(version=_version(), prog_name="anchorlens")
@click.option(
    "--config",
    "config_path",
    default=".anchorlens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="ANCHORLENS_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Keep AI review findings anchored to code that keeps changing."""
    from anchorlens_cli.auth import resolve_github_token
    from anchorlens_core.config import load_config
    from anchorlens_core.engine import ReviewEngine
    from anchorlens_store.base import StoreError

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except (ValueError, OSError) as e:
        raise click.UsageError(str(e))

    level = logging.DEBUG if verbose else config.get("log_level", "WARNING")
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if config.get("store") == "gist":
        token = resolve_github_token()
        if token:
            config["github_token"] = token

    try:
        store = _build_store(config)
    except StoreError as e:
        raise click.ClickException(f"Could not open the dismissal store: {e}")

    ctx.obj["config"] = config
    ctx.obj["store"] = store
    ctx.obj["engine"] = ReviewEngine(backend=store, window=config.get("search_window", 10))
    ctx.call_on_close(store.close)


main.add_command(show_cmd)
main.add_command(status_cmd)
main.add_command(dismiss_cmd)
main.add_command(restore_cmd)
main.add_command(dismissed_cmd)
main.add_command(report_cmd)
