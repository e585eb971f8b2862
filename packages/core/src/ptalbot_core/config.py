"""Bot configuration: built-in defaults, .ptalbot.yml, CLI flags, environment.

Secrets are only ever read from the environment. A token written into the
YAML file is overwritten, never used.
"""

from __future__ import annotations

import os
from pathlib import Path

import yaml

DEFAULT_CONFIG: dict = {
    "host": "0.0.0.0",
    "port": 3000,
    "webhook_path": "/api/webhook",
    "store": "sqlite",
    "store_path": ".ptalbot.db",
    "sweep_delay": 2.0,  # seconds between paced edits during the catch-up sweep
    "sweep_start_delay": 1.0,  # seconds after READY before the sweep starts
    "retry_delay": 1.0,  # seconds before a failed gateway subscription restarts
    "sync_trigger": "crowdin-ptal",  # repository_dispatch action that creates PTAL messages
    "sync_description": "Crowdin Sync Request",
    "debug": False,
}

_NUMERIC = {"port": int, "sweep_delay": float, "sweep_start_delay": float, "retry_delay": float}

_SECRETS = {
    "github_token": "GITHUB_TOKEN",
    "webhook_secret": "GITHUB_WEBHOOK_SECRET",
    "discord_token": "DISCORD_TOKEN",
}


def _coerce_numbers(config: dict, source: str) -> None:
    for key, kind in _NUMERIC.items():
        try:
            config[key] = kind(config[key])
        except (TypeError, ValueError) as e:
            raise ValueError(f"{source}: {key} must be a number, got {config[key]!r}") from e


def load_config(config_path: str = ".ptalbot.yml", cli_overrides: dict | None = None) -> dict:
    """Return the merged configuration dict.

    Later sources win: defaults, then the YAML file (if it exists), then
    CLI overrides whose value is not None. Credentials are resolved last
    from GITHUB_TOKEN, GITHUB_WEBHOOK_SECRET and DISCORD_TOKEN.
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            config.update(yaml.safe_load(f) or {})

    config.update({k: v for k, v in (cli_overrides or {}).items() if v is not None})
    _coerce_numbers(config, str(path))

    for key, env in _SECRETS.items():
        config[key] = os.environ.get(env)

    return config
