"""Credential resolution for the bot.

The GitHub token comes from GITHUB_TOKEN, falling back to an existing
`gh auth login` session for local runs. The webhook secret and Discord
token have no fallback: they must be set in the environment.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

_REQUIRED = {
    "webhook_secret": "GITHUB_WEBHOOK_SECRET",
    "discord_token": "DISCORD_TOKEN",
    "github_token": "GITHUB_TOKEN",
}


def _gh_cli_token() -> str | None:
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token() -> str | None:
    """Return a GitHub token or None. Never raises."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    token = _gh_cli_token()
    if token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    return token


def missing_credentials(config: dict) -> list[str]:
    """Return the environment variable names for every credential ``serve`` lacks."""
    return [env for key, env in _REQUIRED.items() if not config.get(key)]
