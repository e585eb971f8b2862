"""serve command: run the webhook server and Discord gateway."""

from __future__ import annotations

import asyncio
import logging

import click
from rich.logging import RichHandler


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # discord.py's gateway chatter is noise at DEBUG.
    logging.getLogger("discord").setLevel(logging.INFO)


@click.command("serve")
@click.option("--host", default=None, help="Interface to bind. Overrides config file.")
@click.option("--port", type=int, default=None, help="Port to bind. Overrides config file.")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.pass_context
def serve_cmd(ctx, host: str | None, port: int | None, debug: bool):
    """Run the PTAL bot.

    Listens for GitHub webhooks, keeps tracked PTAL messages up to date, and
    sweeps every stored message once after connecting to Discord.

    \b
    Required environment variables:
      GITHUB_WEBHOOK_SECRET  Secret configured on the GitHub webhook
      DISCORD_TOKEN          Discord bot token
      GITHUB_TOKEN           GitHub token (or use gh CLI)
    """
    from ptalbot_cli.auth import missing_credentials
    from ptalbot_core.bot import run

    config = ctx.obj["config"]
    for key, value in {"host": host, "port": port, "debug": debug or None}.items():
        if value is not None:
            config[key] = value

    missing = missing_credentials(config)
    if missing:
        raise click.UsageError(f"Missing credentials: {', '.join(missing)}. Set them in the environment.")

    _setup_logging(bool(config.get("debug")))
    try:
        asyncio.run(run(config, ctx.obj["store"]))
    except KeyboardInterrupt:
        return
