"""crowdin commands: route sync-request notifications to channels."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from ptalbot_cli.commands.ptal import _split_repo
from ptalbot_store.models import Registration

console = Console()


@click.group("crowdin")
def crowdin_group():
    """Manage which channels receive Crowdin sync PTAL messages."""


@crowdin_group.command("add")
@click.option("--repo", required=True, help="GitHub repository (owner/name).")
@click.option("--guild", "guild_id", required=True, help="Discord guild (server) id.")
@click.option("--channel", "channel_id", required=True, help="Discord channel id.")
@click.pass_context
def add_cmd(ctx, repo: str, guild_id: str, channel_id: str):
    """Post PTAL messages for REPO's sync requests to a channel."""
    store = ctx.obj["store"]
    owner, name = _split_repo(repo)

    existing = store.find_registrations(owner, name)
    if any(r.channel_id == channel_id for r in existing):
        console.print(f"[yellow]Channel {channel_id} is already registered for {repo}.[/yellow]")
        return

    store.insert_registration(Registration(owner=owner, repo=name, channel_id=channel_id, guild_id=guild_id))
    console.print(f"[green]Registered channel {channel_id} (guild {guild_id}) for {repo}.[/green]")
    if not store.guild_exists(guild_id):
        console.print(
            f"[yellow]The bot has not seen guild {guild_id} yet. "
            "Messages are skipped until it joins.[/yellow]"
        )


@crowdin_group.command("list")
@click.option("--repo", default=None, help="GitHub repository (owner/name).")
@click.pass_context
def list_cmd(ctx, repo: str | None):
    """Show channel registrations."""
    store = ctx.obj["store"]
    if repo is None:
        registrations = store.list_registrations()
    else:
        owner, name = _split_repo(repo)
        registrations = store.list_registrations(owner=owner, repo=name)

    if not registrations:
        console.print("[yellow]No channel registrations found.[/yellow]")
        return

    table = Table(title="Crowdin sync channels", show_header=True, header_style="bold cyan")
    table.add_column("Repository", style="bold")
    table.add_column("Guild")
    table.add_column("Channel")
    for r in registrations:
        table.add_row(f"{r.owner}/{r.repo}", r.guild_id, r.channel_id)
    console.print(table)
