"""CLI entry point for ptalbot.

Commands:
  serve     Run the webhook server and Discord gateway.
  ptal      Inspect tracked PTAL messages.
  crowdin   Manage which channels receive sync-request PTAL messages.
  sign      Compute the webhook signature header for a payload file.
"""

from __future__ import annotations

import importlib.metadata

import click
from rich.console import Console

from ptalbot_cli.commands.crowdin import crowdin_group
from ptalbot_cli.commands.ptal import ptal_group
from ptalbot_cli.commands.serve import serve_cmd
from ptalbot_cli.commands.sign import sign_cmd

console = Console()

# Subcommands that run without opening the store.
_STORELESS_COMMANDS = {"sign"}


def _build_store(config: dict):
    """Instantiate the configured store from .ptalbot.yml settings.

    Store selection:
      store: sqlite → SQLiteStore (store_path or .ptalbot.db)   (default)
      store: memory → MemoryStore (state is lost on exit)

    This factory lives in cli.py so neither ptalbot_core nor ptalbot_store
    know about the config file format.
    """
    store_type = config.get("store", "sqlite")

    if store_type == "memory":
        from ptalbot_store.memory import MemoryStore

        console.print("[yellow]Using in-memory store: PTAL records will not survive a restart.[/yellow]")
        return MemoryStore()

    if store_type != "sqlite":
        raise click.UsageError(f"Unknown store {store_type!r}. Choose 'sqlite' or 'memory'.")

    from ptalbot_store.sqlite import SQLiteStore

    return SQLiteStore(db_path=config.get("store_path", ".ptalbot.db"))


@click.group()
@click.version_option(
    version=importlib.metadata.version("ptalbot"),
    prog_name="ptalbot",
)
@click.option(
    "--config",
    "config_path",
    default=".ptalbot.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PTALBOT_CONFIG",
)
@click.pass_context
def main(ctx: click.Context, config_path: str):
    """Keeps Discord PTAL messages in sync with GitHub pull request reviews."""
    from ptalbot_cli.auth import resolve_github_token
    from ptalbot_core.config import load_config

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    ctx.obj["config"] = config
    if ctx.invoked_subcommand in _STORELESS_COMMANDS:
        return

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.call_on_close(store.close)


main.add_command(serve_cmd)
main.add_command(ptal_group)
main.add_command(crowdin_group)
main.add_command(sign_cmd)
