"""ptal commands: inspect tracked PTAL messages."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()


def _split_repo(repo: str) -> tuple[str, str]:
    owner, sep, name = repo.partition("/")
    if not sep or not owner or not name:
        raise click.BadParameter("expected owner/name", param_hint="--repo")
    return owner, name


@click.group("ptal")
def ptal_group():
    """Inspect tracked PTAL messages."""


@ptal_group.command("list")
@click.option("--repo", default=None, help="GitHub repository (owner/name).")
@click.option("--pr", "pr_number", type=int, default=None, help="Filter by PR number (requires --repo).")
@click.option("--limit", default=50, show_default=True, help="Maximum number of records to show.")
@click.pass_context
def list_cmd(ctx, repo: str | None, pr_number: int | None, limit: int):
    """Show PTAL records the bot keeps up to date."""
    store = ctx.obj["store"]

    if pr_number is not None and repo is None:
        raise click.UsageError("--pr requires --repo.")

    if repo is None:
        records = store.list_all_ptal()
    else:
        owner, name = _split_repo(repo)
        if pr_number is not None:
            records = store.find_ptal(owner, name, pr_number)
        else:
            records = [r for r in store.list_all_ptal() if r.owner == owner and r.repository == name]

    if not records:
        console.print("[yellow]No PTAL records found.[/yellow]")
        return

    # Show most recent first, capped at --limit.
    records = list(reversed(records))[:limit]

    table = Table(title="Tracked PTAL messages", show_header=True, header_style="bold cyan")
    table.add_column("Pull Request", style="bold")
    table.add_column("Description", max_width=30)
    table.add_column("Guild")
    table.add_column("Channel")
    table.add_column("Message")

    for r in records:
        table.add_row(r.key, r.description, r.guild_id, r.channel, r.message)

    console.print(table)
